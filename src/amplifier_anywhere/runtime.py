"""
Container runtime detection.

Docker is preferred over Podman when both are installed. Detection is
sequential: probe docker, then podman, and take the first that reports
a version. The chosen runtime is then checked for liveness:

- docker: `docker info` must succeed (the daemon must be up)
- podman: daemonless, but `podman version` must still succeed
"""

from dataclasses import dataclass
from enum import Enum

from .errors import (
    NoRuntimeFoundError,
    RuntimeNotAccessibleError,
    RuntimeNotRunningError,
    UsageError,
)
from .subprocess_utils import run_command, run_command_bool


class RuntimeName(str, Enum):
    """Supported container runtimes, in detection order."""

    DOCKER = "docker"
    PODMAN = "podman"


DETECTION_ORDER = (RuntimeName.DOCKER, RuntimeName.PODMAN)


@dataclass(frozen=True)
class RuntimeChoice:
    """A selected, validated container runtime."""

    name: RuntimeName
    executable: str
    version: str
    operational: bool = True

    def command(self, *args: str) -> list[str]:
        """Build an argv list for this runtime."""
        return [self.executable, *args]


def parse_runtime_name(value: str) -> RuntimeName:
    """Parse a user-supplied runtime name (case-insensitive)."""
    try:
        return RuntimeName(value.strip().lower())
    except ValueError:
        raise UsageError(
            user_message=f"Unknown container runtime: {value}",
            suggested_action="Use --runtime docker or --runtime podman",
        ) from None


def get_runtime_version(executable: str) -> str | None:
    """Return the runtime's version string, or None if it does not answer."""
    output = run_command([executable, "--version"])
    return output or None


def is_runtime_operational(name: RuntimeName, executable: str) -> bool:
    """Run the liveness check appropriate to the runtime."""
    if name is RuntimeName.DOCKER:
        return run_command_bool([executable, "info"])
    return run_command_bool([executable, "version"])


def require_operational(choice: RuntimeChoice) -> RuntimeChoice:
    """
    Raises:
        RuntimeNotRunningError: Docker daemon is not responding
        RuntimeNotAccessibleError: Podman does not answer `version`
    """
    if choice.operational:
        return choice
    if choice.name is RuntimeName.DOCKER:
        raise RuntimeNotRunningError()
    raise RuntimeNotAccessibleError(runtime=choice.executable)


def probe_runtime(forced: str | RuntimeName | None = None) -> RuntimeChoice:
    """
    Select a container runtime and record whether it is operational.

    Args:
        forced: Runtime to use without auto-detection

    Raises:
        UsageError: forced name is not docker or podman
        NoRuntimeFoundError: no runtime reported a version
        RuntimeNotAccessibleError: forced runtime is not installed
    """
    if forced is not None:
        name = forced if isinstance(forced, RuntimeName) else parse_runtime_name(forced)
        version = get_runtime_version(name.value)
        if version is None:
            raise RuntimeNotAccessibleError(
                runtime=name.value,
                user_message=f"{name.value} was requested but is not installed or not answering",
                suggested_action=f"Install {name.value} or drop --runtime to auto-detect",
            )
        selected: tuple[RuntimeName, str] | None = (name, version)
    else:
        selected = None
        for candidate in DETECTION_ORDER:
            version = get_runtime_version(candidate.value)
            if version is not None:
                selected = (candidate, version)
                break

    if selected is None:
        raise NoRuntimeFoundError()

    name, version = selected
    return RuntimeChoice(
        name=name,
        executable=name.value,
        version=version,
        operational=is_runtime_operational(name, name.value),
    )


def detect_runtime(forced: str | RuntimeName | None = None) -> RuntimeChoice:
    """
    Select and validate a container runtime.

    Raises:
        UsageError: forced name is not docker or podman
        NoRuntimeFoundError: no runtime reported a version
        RuntimeNotAccessibleError: forced runtime or podman is not answering
        RuntimeNotRunningError: docker daemon is down
    """
    return require_operational(probe_runtime(forced))
