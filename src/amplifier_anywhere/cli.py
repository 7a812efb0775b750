#!/usr/bin/env python3
"""
amplifier-anywhere - run Claude Code with Amplifier against any project.

The launcher detects Docker or Podman, resolves credentials, builds the
image on first use and starts one interactive container with the
project mounted at /workspace.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any

import click
import typer
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from typer.core import TyperGroup

from . import __version__, config, credentials, doctor, images, launcher, runtime
from . import platform as platform_module
from .cli_common import console, handle_errors, shorten_path, state
from .errors import UsageError, WorkspaceNotFoundError
from .panels import create_success_panel, create_warning_panel
from .ui import print_warning


class DefaultStartGroup(TyperGroup):
    """Route invocations without a subcommand to `start`.

    `amplifier-anywhere ~/proj` behaves like `amplifier-anywhere start ~/proj`.
    """

    GLOBAL_FLAGS = ("--debug", "--version", "-v", "--help")

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        index = 0
        while index < len(args) and args[index] in self.GLOBAL_FLAGS:
            index += 1
        if index >= len(args) or args[index] not in self.commands:
            args = [*args[:index], "start", *args[index:]]
        return super().parse_args(ctx, args)


# ─────────────────────────────────────────────────────────────────────────────
# App Configuration
# ─────────────────────────────────────────────────────────────────────────────

app = typer.Typer(
    name="amplifier-anywhere",
    help="Run Claude Code with Amplifier in a container against any project.",
    cls=DefaultStartGroup,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Show detailed error information for troubleshooting.",
        is_eager=True,
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        is_eager=True,
    ),
) -> None:
    """
    [bold cyan]Amplifier Anywhere[/bold cyan] - Claude Code in a container

    Mounts a project at /workspace and persists Amplifier data between runs.
    """
    state.debug = debug

    if version:
        console.print(
            Panel(
                f"[cyan]amplifier-anywhere[/cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Containerized Claude Code launcher[/dim]",
                border_style="cyan",
            )
        )
        raise typer.Exit()


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
@handle_errors
def start(
    project: str | None = typer.Argument(
        None, help="Project directory to mount (default: current directory)"
    ),
    data_dir: str | None = typer.Argument(
        None, help="Amplifier data directory (default: ./amplifier-data)"
    ),
    build_context: Path | None = typer.Option(
        None, "--build-context", "-b", help="Directory containing the Dockerfile"
    ),
    runtime_name: str | None = typer.Option(
        None, "--runtime", "-r", help="Force a container runtime: docker or podman"
    ),
    image: str | None = typer.Option(None, "--image", help="Image name to build and run"),
    settings: Path | None = typer.Option(
        None, "--settings", help="Claude settings file with fallback credentials"
    ),
    rebuild: bool = typer.Option(False, "--rebuild", help="Rebuild the image first"),
    skip_mount_check: bool = typer.Option(
        False, "--skip-mount-check", help="Do not test mounts before launching"
    ),
) -> None:
    """
    Launch Claude Code in a container for PROJECT.

    The container is removed when the session ends; DATA_DIR keeps
    Amplifier state between runs.
    """
    cfg = config.load_config()
    host = platform_module.detect_host_kind()

    # Paths first: a missing project fails before any runtime or credential work
    project_path = platform_module.resolve_host_path(project or ".", host)
    if not project_path.is_dir():
        raise WorkspaceNotFoundError(path=str(project_path))

    is_optimal, _ = platform_module.check_path_performance(project_path, host)
    if not is_optimal:
        console.print(
            create_warning_panel(
                "Performance Warning",
                "Your project is on the Windows filesystem.",
                "For better performance, move it to ~/projects inside WSL.",
            )
        )

    with Status("[cyan]Checking container runtime...[/cyan]", console=console, spinner="dots"):
        selected = runtime.detect_runtime(runtime_name or cfg["runtime"])

    settings_path = settings or Path(cfg["settings_file"])
    decision = credentials.resolve_credentials(os.environ, settings_path)

    data_path = platform_module.resolve_host_path(data_dir or cfg["data_dir"], host)
    launcher.prepare_data_dir(data_path)
    mounts = launcher.build_mounts(project_path, data_path, host)

    image_name = image or cfg["image"]
    if images.ensure_image(selected, image_name, build_context, rebuild=rebuild):
        console.print(f"[green]✓ Built {escape(image_name)}[/green]")

    container_config = launcher.build_container_config(
        image=image_name,
        decision=decision,
        mounts=mounts,
        container_name=launcher.generate_container_name(project_path),
    )

    if cfg["mount_check"] and not skip_mount_check:
        with Status("[cyan]Checking mounts...[/cyan]", console=console, spinner="dots"):
            failed = launcher.check_mount_access(selected, container_config)
        for mount in failed:
            print_warning(
                f"Could not verify {mount.purpose} mount {mount.source} -> "
                f"{mount.container_path}; continuing anyway"
            )

    cmd = launcher.build_run_command(selected, container_config, tty=sys.stdin.isatty())
    _show_launch_panel(selected, decision, container_config, host)
    if state.debug:
        console.print(f"[dim]{escape(launcher.redact_command(cmd))}[/dim]")

    exit_code = launcher.run_container(cmd)
    if exit_code != 0:
        console.print(f"[dim]Container exited with code {exit_code}[/dim]")
    raise typer.Exit(exit_code)


def _show_launch_panel(
    selected: runtime.RuntimeChoice,
    decision: credentials.CredentialDecision,
    container_config: launcher.ContainerConfig,
    host: platform_module.HostKind,
) -> None:
    """Display launch info panel."""
    items = {
        mount.purpose.capitalize(): (
            f"{escape(shorten_path(mount.source))} → {mount.container_path}"
        )
        for mount in container_config.mounts
    }
    items["Backend"] = decision.backend
    items["Runtime"] = selected.name.value
    items["Host"] = platform_module.get_host_name(host)
    items["Image"] = escape(container_config.image_name)
    items["Container"] = container_config.container_name

    console.print()
    console.print(create_success_panel("Launching Claude Code", items))
    console.print()


@app.command("doctor")
@handle_errors
def doctor_cmd(
    runtime_name: str | None = typer.Option(
        None, "--runtime", "-r", help="Check a specific runtime: docker or podman"
    ),
    image: str | None = typer.Option(None, "--image", help="Image name to look for"),
    settings: Path | None = typer.Option(
        None, "--settings", help="Claude settings file with fallback credentials"
    ),
    build_context: Path | None = typer.Option(
        None, "--build-context", "-b", help="Directory containing the Dockerfile"
    ),
) -> None:
    """Check prerequisites without launching anything."""
    cfg = config.load_config()
    with Status("[cyan]Running health checks...[/cyan]", console=console, spinner="dots"):
        result = doctor.run_doctor(
            image=image or cfg["image"],
            forced_runtime=runtime_name or cfg["runtime"],
            settings_path=settings or Path(cfg["settings_file"]),
            build_context=build_context,
        )
    doctor.render_doctor_results(console, result)
    if not result.all_ok:
        raise typer.Exit(1)


@app.command("config")
@handle_errors
def config_cmd(
    key: str | None = typer.Argument(None, help="Setting to show or change"),
    value: str | None = typer.Argument(None, help="New value for the setting"),
) -> None:
    """Show or change launcher settings."""
    if key is None:
        console.print(f"[dim]{escape(str(config.get_config_file()))}[/dim]")
        console.print_json(json.dumps(config.load_config()))
        return

    if value is None:
        current: dict[str, Any] = config.load_config()
        if key not in current:
            raise UsageError(user_message=f"Unknown setting: {key}")
        console.print(json.dumps(current[key]))
        return

    try:
        saved = config.set_config_value(key, value)
    except KeyError:
        raise UsageError(
            user_message=f"Unknown setting: {key}",
            suggested_action="Known settings: "
            + ", ".join(k for k in config.DEFAULT_CONFIG if k != "version"),
        ) from None
    except ValueError as e:
        raise UsageError(user_message=str(e)) from None
    console.print(f"[green]✓ {escape(key)} = {escape(json.dumps(saved))}[/green]")


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
