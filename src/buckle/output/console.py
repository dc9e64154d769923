"""Rich Console factory and theme for buckle output.

Consoles render to a StringIO buffer so every renderer returns a plain
string. In non-TTY environments (tests, pipes) Rich drops color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

BUCKLE_THEME = Theme(
    {
        "buckle.ok": "bold green",
        "buckle.error": "bold red",
        "buckle.warning": "bold yellow",
        "buckle.op": "bold cyan",
        "buckle.key": "dim",
        "buckle.id": "bold blue",
        "buckle.path": "dim",
        "buckle.template": "magenta",
        "buckle.secret": "yellow",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=BUCKLE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
