"""Rich consoles for user-facing output.

Messages are styled by name through THEME so the CLI and the log helper agree
on how success, warnings and errors look. Errors go to stderr.
"""

from rich.console import Console
from rich.theme import Theme

THEME = Theme(
    {
        "info": "none",
        "success": "green",
        "warning": "yellow",
        "error": "bold red",
        "muted": "dim",
    }
)

_consoles: dict[bool, Console] = {}


def get_console(stderr: bool = False) -> Console:
    """Console for stdout, or stderr when asked. One per stream."""
    if stderr not in _consoles:
        _consoles[stderr] = Console(theme=THEME, stderr=stderr, highlight=False)
    return _consoles[stderr]


def safe_print(message: str, style: str | None = None, stderr: bool = False) -> None:
    """Print text exactly as given.

    Markup is off: song titles such as "Song [Remastered]" come from the
    completion model and must not be read as Rich tags.

    Args:
        message: Text to print
        style: Theme name (success, warning, error, muted) or a Rich style
        stderr: Print to stderr instead of stdout
    """
    get_console(stderr).print(message, style=style, markup=False)
