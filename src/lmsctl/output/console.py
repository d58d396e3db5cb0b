"""Rich Console factory and theme for lmsctl output.

Consoles render into a StringIO buffer so renderers return plain strings.
In non-TTY environments (tests, pipes) Rich disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

LMS_THEME = Theme(
    {
        "lms.ok": "bold green",
        "lms.error": "bold red",
        "lms.warning": "bold yellow",
        "lms.op": "bold cyan",
        "lms.key": "dim",
        "lms.id": "bold blue",
        "lms.title": "bold",
        "lms.status.available": "green",
        "lms.status.borrowed": "yellow",
        "lms.status.reserved": "magenta",
        "lms.status.maintenance": "red",
        "lms.loan.active": "yellow",
        "lms.loan.returned": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=LMS_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style for an item availability label or loan status."""
    key = status.lower()
    if key in ("active", "returned"):
        return f"lms.loan.{key}"
    if key in ("available", "borrowed", "reserved", "maintenance"):
        return f"lms.status.{key}"
    return ""
