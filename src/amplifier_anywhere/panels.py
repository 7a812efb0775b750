"""
Panel builders for a consistent look across commands.

All user-facing boxes go through these helpers so colours and
borders stay uniform.
"""

from rich.panel import Panel
from rich.table import Table


def create_success_panel(title: str, items: dict[str, str]) -> Panel:
    """Green panel listing key/value details."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="dim", no_wrap=True)
    grid.add_column(style="white")
    for key, value in items.items():
        grid.add_row(f"{key}:", value)

    return Panel(
        grid,
        title=f"[bold green]{title}[/bold green]",
        border_style="green",
        padding=(0, 1),
    )


def create_warning_panel(title: str, message: str, hint: str | None = None) -> Panel:
    """Yellow panel for non-fatal problems."""
    body = f"[yellow]{message}[/yellow]"
    if hint:
        body += f"\n\n[dim]{hint}[/dim]"
    return Panel(
        body,
        title=f"[bold yellow]⚠ {title}[/bold yellow]",
        border_style="yellow",
        padding=(0, 1),
    )


def create_error_panel(title: str, message: str, hint: str | None = None) -> Panel:
    """Red panel for fatal errors."""
    body = f"[bold]{message}[/bold]"
    if hint:
        body += f"\n\n[dim]→ {hint}[/dim]"
    return Panel(
        body,
        title=f"[bold red]✗ {title}[/bold red]",
        border_style="red",
        padding=(0, 1),
    )
