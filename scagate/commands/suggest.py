import dotenv
import typer

from scagate.commands.resolve import make_layout
from scagate.core.container import get_container
from scagate.core.decorators import handle_errors
from scagate.core.exceptions import CoordinateInvalid
from scagate.core.logging import console
from scagate.models.package_manager import PackageManager

dotenv.load_dotenv()


@handle_errors
def main(
    path: str = typer.Argument(..., help='Artifact path inside the repository'),
    package_type: str = typer.Option(
        ..., '--type', help='Repository package type (e.g. npm, pypi, maven)',
    ),
    organization: str = typer.Option(None, help='Layout organization'),
    module: str = typer.Option(None, help='Layout module'),
    revision: str = typer.Option(None, help='Layout base revision'),
    integration: str = typer.Option(
        None, help='Layout file integration revision',
    ),
):
    """
    Suggest an artifact as a private package (requires authentication).
    """
    container = get_container()
    container.authenticate()

    coordinate = container.get_resolver().resolve(
        path,
        make_layout(organization, module, revision, integration),
        PackageManager.from_package_type(package_type),
    )
    if not coordinate.is_valid:
        raise CoordinateInvalid(coordinate)

    container.get_risk_client().suggest_private_package(coordinate)
    console.print(f"[bold green]Suggested[/] {coordinate} as a private package.")
