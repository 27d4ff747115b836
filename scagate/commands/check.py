import dotenv
import typer
from rich.table import Table

from scagate.commands.resolve import make_layout
from scagate.core.container import get_container
from scagate.core.decorators import handle_errors
from scagate.core.exceptions import PolicyViolation
from scagate.core.logging import console
from scagate.core.storage import JsonPropertyStore
from scagate.models import scan_record
from scagate.services.plugin import ArtifactEvent

dotenv.load_dotenv()

RECORD_ROWS = (
    ('Total Risks', scan_record.TOTAL_RISKS_COUNT),
    ('Critical', scan_record.CRITICAL_RISKS_COUNT),
    ('High', scan_record.HIGH_RISKS_COUNT),
    ('Medium', scan_record.MEDIUM_RISKS_COUNT),
    ('Low', scan_record.LOW_RISKS_COUNT),
    ('Risk Score', scan_record.RISK_SCORE),
    ('Risk Level', scan_record.RISK_LEVEL),
    ('Licenses', scan_record.LICENSES),
    ('Last Scan', scan_record.LAST_SCAN),
)


@handle_errors
def main(
    path: str = typer.Argument(..., help='Artifact path inside the repository'),
    package_type: str = typer.Option(
        ..., '--type', help='Repository package type (e.g. npm, pypi, maven)',
    ),
    location: list[str] = typer.Option(
        None, '--location', help='Physical location (repeatable, defaults to the path)',
    ),
    store: str = typer.Option(
        'data/properties.json', help='JSON property store',
    ),
    organization: str = typer.Option(None, help='Layout organization'),
    module: str = typer.Option(None, help='Layout module'),
    revision: str = typer.Option(None, help='Layout base revision'),
    integration: str = typer.Option(
        None, help='Layout file integration revision',
    ),
):
    """
    Run the download check for an artifact and print its scan record.
    Exits with code 1 when the artifact is blocked.
    """
    locations = list(location or [path])
    properties = JsonPropertyStore(store)
    for loc in locations:
        properties.add_location(loc)

    plugin = get_container().create_plugin(properties)
    event = ArtifactEvent(
        path=path,
        package_type=package_type,
        layout=make_layout(organization, module, revision, integration),
        locations=tuple(locations),
    )
    decision = plugin.check(event)

    record = properties.get_all_properties(locations[0])
    table = Table(title=f'Scan Record: {path}')
    table.add_column('Property', style='cyan')
    table.add_column('Value', style='magenta')
    for label, key in RECORD_ROWS:
        table.add_row(label, record.get(key) or '-')
    console.print(table)

    if decision.blocked:
        raise PolicyViolation(decision.reason, decision.code or 403)
    console.print('[bold green]Allowed[/]')
