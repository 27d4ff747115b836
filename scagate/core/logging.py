import logging
import os
import sys
from typing import Any

import structlog
from rich.console import Console
from rich.markup import escape

# Central console for rich output
console = Console()

SECRET_KEYS = frozenset({'password', 'access_token', 'authorization', 'token'})

LEVEL_STYLES = {
    'debug': 'dim',
    'info': 'green',
    'warning': 'yellow',
    'error': 'bold red',
    'critical': 'bold magenta',
}

# Context keys shown first, in this order, when an event carries them
LEADING_KEYS = ('artifact', 'path', 'location')


class RichConsoleRenderer:
    """
    Render pipeline events on stderr as one line each:

        12:00:01 risk_filler  INFO     Scan record stored artifact='npm:lodash@4.17.15' ...

    Artifact context comes first so a blocked or skipped download can be
    traced by grepping for its path.
    """

    def __init__(self, console: Console | None = None):
        self._console = console or Console(stderr=True)

    @staticmethod
    def _clock(timestamp: str) -> str:
        # 2024-01-01T12:00:01.123456Z -> 12:00:01
        if 'T' not in timestamp:
            return timestamp
        return timestamp.split('T', 1)[1][:8]

    def _context(self, event_dict: dict) -> list[str]:
        keys = [key for key in LEADING_KEYS if key in event_dict]
        keys += sorted(key for key in event_dict if key not in LEADING_KEYS)
        return [
            f"[cyan]{key}[/cyan]=[green]{escape(repr(event_dict[key]))}[/green]"
            for key in keys
        ]

    def __call__(self, logger, name, event_dict):
        style = event_dict.pop('_style', None)
        level = event_dict.pop('level', 'info')
        level_style = LEVEL_STYLES.get(level, 'white')
        exception = event_dict.pop('exception', None)

        line = ' '.join([
            f"[dim]{self._clock(event_dict.pop('timestamp', ''))}[/dim]",
            f"[bold]{event_dict.pop('logger', 'root'):<20}[/bold]",
            f"[{level_style}]{level.upper():<8}[/{level_style}]",
            escape(str(event_dict.pop('event', ''))),
            *self._context(event_dict),
        ])
        if exception:
            line += f"\n[red]{escape(exception)}[/red]"

        self._console.print(line, style=style, highlight=False)
        raise structlog.DropEvent


def mask_secrets(logger, method_name, event_dict):
    """Never let credentials or bearer tokens reach a log sink."""
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS:
            event_dict[key] = '*****'
    return event_dict


def drop_style_processor(logger, method_name, event_dict):
    event_dict.pop('_style', None)
    return event_dict


def setup_logging(level: str = 'INFO') -> None:
    """Configure structured logging for the CLI and embedding hosts."""
    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        mask_secrets,
    ]

    # JSON lines for hosts that ship logs, rich output otherwise
    if os.getenv('ENV') == 'production':
        processors = shared_processors + [
            drop_style_processor,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            RichConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
