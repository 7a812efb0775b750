"""
CLI Common Utilities.

Shared console, state and the error boundary decorator used by the
launcher commands and the in-container entrypoint.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar, cast

import typer
from rich.markup import escape

from . import ui
from .errors import AmplifierError
from .exit_codes import EXIT_CANCELLED, EXIT_PREREQ
from .panels import create_warning_panel

F = TypeVar("F", bound=Callable[..., Any])

# Maximum length for displaying file paths before truncation
MAX_DISPLAY_PATH_LENGTH = 50
# Characters to keep when truncating (MAX - 3 for "...")
PATH_TRUNCATE_LENGTH = 47


# ─────────────────────────────────────────────────────────────────────────────
# Shared Console and State
# ─────────────────────────────────────────────────────────────────────────────

console = ui.console


class AppState:
    """Global application state for CLI flags."""

    debug: bool = False


state = AppState()


# ─────────────────────────────────────────────────────────────────────────────
# Error Boundary Decorator
# ─────────────────────────────────────────────────────────────────────────────


def handle_errors(func: F) -> F:
    """Decorator to catch AmplifierError and render it."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except AmplifierError as e:
            ui.render_error(console, e, debug=state.debug)
            raise typer.Exit(e.exit_code)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled.[/dim]")
            raise typer.Exit(EXIT_CANCELLED)
        except (typer.Exit, SystemExit):
            # Let typer exits pass through
            raise
        except Exception as e:
            if state.debug:
                console.print_exception()
            else:
                console.print(
                    create_warning_panel(
                        "Unexpected Error",
                        escape(str(e)),
                        "Run with --debug for full traceback",
                    )
                )
            raise typer.Exit(EXIT_PREREQ)

    return cast(F, wrapper)


def shorten_path(path: str) -> str:
    """Trim long paths from the left for display."""
    if len(path) > MAX_DISPLAY_PATH_LENGTH:
        return "..." + path[-PATH_TRUNCATE_LENGTH:]
    return path
