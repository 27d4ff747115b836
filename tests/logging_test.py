import io

import pytest
import structlog
from rich.console import Console

from scagate.core.logging import RichConsoleRenderer


def _render(event_dict):
    buffer = io.StringIO()
    renderer = RichConsoleRenderer(Console(file=buffer, width=200, color_system=None))
    with pytest.raises(structlog.DropEvent):
        renderer(None, 'info', event_dict)
    return buffer.getvalue()


def test_renderer_puts_artifact_context_first():
    output = _render({
        'event': 'Scan record stored',
        'level': 'info',
        'logger': 'risk_filler',
        'timestamp': '2024-01-01T12:00:01.123456Z',
        'locations': 1,
        'artifact': 'npm:lodash@4.17.15',
    })

    assert output.startswith('12:00:01 risk_filler')
    assert 'INFO' in output
    assert output.index('artifact=') < output.index('locations=')


def test_renderer_escapes_markup():
    output = _render({'event': 'Unexpected body [bold]', 'level': 'error', 'body': '[red]x'})
    assert '[bold]' in output
    assert "'[red]x'" in output
