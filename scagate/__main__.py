import typer

from scagate.commands import auth
from scagate.commands import check
from scagate.commands import resolve
from scagate.commands import suggest
from scagate.commands import vulns
from scagate.core.logging import setup_logging

app = typer.Typer(
    help='scagate: gate package downloads on SCA risk and license data.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.command('resolve')(resolve.main)
app.command('check')(check.main)
app.command('auth')(auth.main)
app.command('vulns')(vulns.main)
app.command('suggest')(suggest.main)


@app.callback()
def main(
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
):
    """
    scagate CLI - Software composition analysis for artifact repositories.
    """
    level = 'DEBUG' if debug else 'INFO'
    setup_logging(level=level)


if __name__ == '__main__':
    app()
