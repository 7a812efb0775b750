"""
Shared console and error rendering.

Everything the launcher tells the user goes through `console`. Warnings
from lower layers (settings parse failures, mount checks) are printed
with print_warning and never abort the run.
"""

from rich.console import Console
from rich.markup import escape

from .errors import AmplifierError
from .panels import create_error_panel

console = Console()
err_console = Console(stderr=True)


def print_warning(message: str, *, target: Console | None = None) -> None:
    """Print a one-line yellow warning."""
    out = target or err_console
    out.print(f"[yellow]Warning:[/yellow] {escape(message)}", highlight=False)


def render_error(out: Console, error: AmplifierError, debug: bool = False) -> None:
    """Render an AmplifierError as a red panel."""
    title = type(error).__name__.removesuffix("Error") or "Error"
    out.print()
    out.print(
        create_error_panel(
            title,
            escape(error.user_message),
            escape(error.suggested_action) if error.suggested_action else None,
        )
    )
    if debug and error.debug_context:
        out.print(f"[dim]{escape(error.debug_context)}[/dim]")
    out.print()
