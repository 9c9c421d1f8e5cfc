"""Rich rendering for sheetsync CLI output."""

from rich.console import Console
from rich.text import Text

_console: Console | None = None


def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console(highlight=False)
    return _console


def print_error(message: str) -> None:
    get_console().print(Text(f"Error: {message}", style="bold red"))


def print_success(message: str) -> None:
    get_console().print(Text(f"✓ {message}", style="green"))


def print_position(log_file: str, log_pos: int) -> None:
    """Print a change-log position as "<file> <offset>".

    The two fields stay space separated so scripts can split the line.
    """
    line = Text()
    line.append(log_file, style="bold")
    line.append(" ")
    line.append(str(log_pos), style="cyan")
    get_console().print(line)


def print_server_banner(host: str, port: int) -> None:
    get_console().print(Text(f"Server starting on http://{host}:{port}", style="cyan"))
