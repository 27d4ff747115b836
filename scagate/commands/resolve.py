import typer
from rich.table import Table

from scagate.core.container import get_container
from scagate.core.decorators import handle_errors
from scagate.core.logging import console
from scagate.models.coordinate import FileLayout
from scagate.models.package_manager import PackageManager


def make_layout(
    organization: str | None,
    module: str | None,
    revision: str | None,
    integration: str | None,
) -> FileLayout | None:
    if not any((organization, module, revision, integration)):
        return None
    return FileLayout(organization, module, revision, integration)


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
    Resolve the package coordinate of an artifact path.
    """
    package_manager = PackageManager.from_package_type(package_type)
    layout = make_layout(organization, module, revision, integration)

    coordinate = get_container().get_resolver().resolve(path, layout, package_manager)

    table = Table(title='Artifact Coordinate')
    table.add_column('Field', style='cyan')
    table.add_column('Value', style='magenta')
    table.add_row('Package Manager', coordinate.package_manager.key)
    table.add_row('Package Type', coordinate.package_type or '-')
    table.add_row('Name', coordinate.name or '-')
    table.add_row('Version', coordinate.version or '-')
    table.add_row('Valid', 'yes' if coordinate.is_valid else '[red]no[/red]')
    console.print(table)

    if not coordinate.is_valid:
        raise typer.Exit(1)
