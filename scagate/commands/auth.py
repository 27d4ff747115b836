import dotenv
import typer

from scagate.core.container import get_container
from scagate.core.decorators import handle_errors
from scagate.core.logging import console

dotenv.load_dotenv()


@handle_errors
def main():
    """
    Verify the configured SCA credentials.
    """
    container = get_container()
    missing = container.config.auth.missing_fields()
    if missing:
        raise ValueError(f"Missing configuration: {', '.join(missing)}")

    if not container.authenticate():
        console.print('[bold red]Authentication failed.[/] See the log for details.')
        raise typer.Exit(1)

    token_manager = container.get_token_manager()
    console.print('[bold green]Authenticated.[/]')
    tenant = token_manager.tenant_id
    if tenant:
        console.print(f"Tenant ID: [cyan]{tenant}[/cyan]")
