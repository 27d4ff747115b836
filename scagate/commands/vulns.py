import dotenv
import typer
from rich.table import Table

from scagate.core.container import get_container
from scagate.core.decorators import handle_errors
from scagate.core.logging import console

dotenv.load_dotenv()


@handle_errors
def main(
    identifier: str = typer.Argument(
        ..., help='SCA package identifier (see SCA.PackageIdentification)',
    ),
    limit: int = typer.Option(50, help='Max results to display'),
):
    """
    List the vulnerabilities of a package (requires authentication).
    """
    container = get_container()
    container.authenticate()
    vulnerabilities = container.get_risk_client().get_vulnerabilities(identifier)

    if not vulnerabilities:
        console.print(f"[green]No vulnerabilities found for {identifier}.[/green]")
        return

    table = Table(title=f'Vulnerabilities: {identifier}')
    table.add_column('ID', style='cyan')
    table.add_column('Severity', style='red')
    table.add_column('Score', justify='right')
    table.add_column('CWE', style='dim')
    table.add_column('Published', style='dim')

    ordered = sorted(vulnerabilities, key=lambda v: v.score or 0, reverse=True)
    for vuln in ordered[:limit]:
        table.add_row(
            vuln.id,
            vuln.severity or '-',
            f"{vuln.score:.1f}" if vuln.score is not None else '-',
            vuln.cwe or '-',
            vuln.publish_date or '-',
        )
    console.print(table)
    if len(vulnerabilities) > limit:
        console.print(f"[dim]... {len(vulnerabilities) - limit} more[/dim]")
