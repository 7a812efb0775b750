"""
System health checks and prerequisite validation.

The doctor module runs the same probes a launch would (runtime,
credentials, image, build context) without starting anything, and
reports each one with a pass/fail indicator and a fix hint.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .credentials import (
    CREDENTIAL_KEYS,
    classify,
    describe_sources,
    load_settings_env,
    merge_credential_sources,
)
from .errors import AmplifierError
from .images import image_exists, locate_build_context
from .platform import HostKind, check_path_performance, detect_host_kind, get_host_name
from .runtime import RuntimeChoice, probe_runtime, require_operational

# ═══════════════════════════════════════════════════════════════════════════════
# Data Classes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    passed: bool
    message: str
    version: str | None = None
    fix_hint: str | None = None
    severity: str = "error"  # "error", "warning", "info"


@dataclass
class DoctorResult:
    """Complete health check results."""

    host: HostKind = HostKind.UNIX
    runtime: RuntimeChoice | None = None
    checks: list[CheckResult] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        """Check if all critical prerequisites pass."""
        return self.error_count == 0

    @property
    def error_count(self) -> int:
        """Count of failed critical checks."""
        return sum(1 for c in self.checks if not c.passed and c.severity == "error")

    @property
    def warning_count(self) -> int:
        """Count of warnings."""
        return sum(1 for c in self.checks if not c.passed and c.severity == "warning")


# ═══════════════════════════════════════════════════════════════════════════════
# Health Checks
# ═══════════════════════════════════════════════════════════════════════════════


def check_runtime(forced: str | None = None) -> tuple[CheckResult, RuntimeChoice | None]:
    """Check that a container runtime is installed and operational."""
    runtime: RuntimeChoice | None = None
    try:
        runtime = probe_runtime(forced)
        require_operational(runtime)
    except AmplifierError as e:
        # An installed but stopped runtime still reports its version
        return (
            CheckResult(
                name="Container runtime",
                passed=False,
                message=e.user_message,
                version=runtime.version if runtime is not None else None,
                fix_hint=e.suggested_action,
            ),
            None,
        )

    return (
        CheckResult(
            name="Container runtime",
            passed=True,
            message=f"{runtime.name.value} is installed and operational",
            version=runtime.version,
        ),
        runtime,
    )


def check_credentials(environ: Mapping[str, str], settings_path: Path | None) -> CheckResult:
    """Check that credentials resolve to a backend, and say where they came from."""
    file_values = load_settings_env(settings_path)
    sources = describe_sources(environ, file_values)
    found = ", ".join(f"{key} ({sources[key]})" for key in CREDENTIAL_KEYS if sources[key] != "unset")

    try:
        decision = classify(merge_credential_sources(environ, file_values))
    except AmplifierError as e:
        return CheckResult(
            name="Credentials",
            passed=False,
            message=e.user_message,
            fix_hint=e.suggested_action,
        )

    return CheckResult(
        name="Credentials",
        passed=True,
        message=f"{decision.backend}: {found}",
    )


def check_image(runtime: RuntimeChoice | None, image: str) -> CheckResult:
    """Check whether the image has already been built."""
    if runtime is None:
        return CheckResult(
            name="Image",
            passed=False,
            message=f"Cannot check {image} without a container runtime",
            severity="warning",
        )
    if image_exists(runtime, image):
        return CheckResult(name="Image", passed=True, message=f"{image} is present")
    return CheckResult(
        name="Image",
        passed=False,
        message=f"{image} not built yet (it will be built on first launch)",
        severity="info",
    )


def check_build_context(explicit: Path | None = None) -> CheckResult:
    """Check that a Dockerfile can be found for building the image."""
    try:
        context = locate_build_context(explicit)
    except AmplifierError as e:
        return CheckResult(
            name="Build context",
            passed=False,
            message=e.user_message,
            fix_hint=e.suggested_action,
            severity="warning",
        )
    return CheckResult(name="Build context", passed=True, message=str(context))


def check_project_path(project: Path, host: HostKind) -> CheckResult:
    """Warn when a WSL project sits on the slow Windows filesystem."""
    is_optimal, warning = check_path_performance(project, host)
    if is_optimal:
        return CheckResult(name="Project location", passed=True, message=str(project))
    return CheckResult(
        name="Project location",
        passed=False,
        message=warning or str(project),
        fix_hint="Move the project to ~/projects inside WSL",
        severity="warning",
    )


def run_doctor(
    image: str,
    forced_runtime: str | None = None,
    settings_path: Path | None = None,
    build_context: Path | None = None,
    project: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> DoctorResult:
    """Run every health check and collect the results."""
    env = os.environ if environ is None else environ
    result = DoctorResult(host=detect_host_kind(env))

    runtime_check, runtime = check_runtime(forced_runtime)
    result.runtime = runtime
    result.checks.append(runtime_check)
    result.checks.append(check_credentials(env, settings_path))
    result.checks.append(check_image(runtime, image))
    result.checks.append(check_build_context(build_context))
    result.checks.append(check_project_path(project or Path.cwd(), result.host))

    return result


# ═══════════════════════════════════════════════════════════════════════════════
# Rendering
# ═══════════════════════════════════════════════════════════════════════════════


def render_doctor_results(console: Console, result: DoctorResult) -> None:
    """Render health check results as a table."""
    table = Table(
        title=f"[bold cyan]Health Check[/bold cyan] [dim]({get_host_name(result.host)})[/dim]",
        box=box.ROUNDED,
        header_style="bold cyan",
        expand=True,
    )
    table.add_column("Status", no_wrap=True, width=6)
    table.add_column("Check", style="white", no_wrap=True)
    table.add_column("Details")

    for check in result.checks:
        if check.passed:
            status = "[green]✓[/green]"
        elif check.severity == "error":
            status = "[red]✗[/red]"
        elif check.severity == "warning":
            status = "[yellow]![/yellow]"
        else:
            status = "[cyan]i[/cyan]"

        details = escape(check.message)
        if check.version:
            details += f"\n[dim]{escape(check.version)}[/dim]"
        if check.fix_hint and not check.passed:
            details += f"\n[dim]→ {escape(check.fix_hint)}[/dim]"
        table.add_row(status, check.name, details)

    console.print()
    console.print(table)
    console.print()

    if result.all_ok:
        console.print("[green]All prerequisites met.[/green]")
    else:
        console.print(
            f"[red]{result.error_count} error(s)[/red], "
            f"[yellow]{result.warning_count} warning(s)[/yellow]"
        )
