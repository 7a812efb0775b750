"""
Typed exceptions for the launcher and the in-container entrypoint.

Every fatal condition is an AmplifierError subclass carrying a
human-readable message, an optional suggested action and the exit
code the process should terminate with. The CLI error boundary
(cli_common.handle_errors) renders them and exits.
"""

from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import (
    EXIT_CONFIG,
    EXIT_NOT_FOUND,
    EXIT_PREREQ,
    EXIT_TOOL,
    EXIT_USAGE,
)


@dataclass
class AmplifierError(Exception):
    """Base class for all launcher and entrypoint errors."""

    user_message: str = "An error occurred"
    suggested_action: str | None = None
    debug_context: str | None = None
    exit_code: int = EXIT_NOT_FOUND

    def __str__(self) -> str:
        return self.user_message


# ═══════════════════════════════════════════════════════════════════════════════
# Category Bases
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class UsageError(AmplifierError):
    """Invalid arguments or option values."""

    exit_code: int = EXIT_USAGE


@dataclass
class PrerequisiteError(AmplifierError):
    """A required host tool is missing or unusable."""

    exit_code: int = EXIT_PREREQ


@dataclass
class ConfigError(AmplifierError):
    """Credentials or generated configuration are unusable."""

    exit_code: int = EXIT_CONFIG


@dataclass
class ToolError(AmplifierError):
    """A container runtime command failed."""

    exit_code: int = EXIT_TOOL
    command: str | None = None
    stderr: str | None = None

    def __post_init__(self) -> None:
        if self.debug_context is None and self.command:
            context = f"Command: {self.command}"
            if self.stderr:
                context += f"\n{self.stderr.strip()}"
            self.debug_context = context


# ═══════════════════════════════════════════════════════════════════════════════
# Container Runtime
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class NoRuntimeFoundError(PrerequisiteError):
    """Neither docker nor podman reported a version."""

    user_message: str = "No container runtime found (docker or podman required)"
    suggested_action: str | None = (
        "Install Docker Desktop (https://docker.com/products/docker-desktop) "
        "or Podman (https://podman.io) and make sure it is on your PATH"
    )


@dataclass
class RuntimeNotAccessibleError(PrerequisiteError):
    """The runtime is installed but does not answer basic commands."""

    runtime: str = ""
    user_message: str = ""
    suggested_action: str | None = None

    def __post_init__(self) -> None:
        if not self.user_message:
            self.user_message = f"{self.runtime or 'Container runtime'} is not accessible"
        if self.suggested_action is None:
            self.suggested_action = (
                f"Check that '{self.runtime} version' works for your user"
                if self.runtime
                else "Check your container runtime installation"
            )


@dataclass
class RuntimeNotRunningError(PrerequisiteError):
    """Docker is installed but its daemon is not responding."""

    user_message: str = "Docker is installed but the Docker daemon is not running"
    suggested_action: str | None = "Start Docker Desktop or the docker service and try again"


# ═══════════════════════════════════════════════════════════════════════════════
# Credentials and Configuration
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class NoCredentialsError(ConfigError):
    """Neither an Anthropic API key nor AWS credentials were found."""

    user_message: str = "No API keys found! Please set ANTHROPIC_API_KEY or AWS credentials"
    suggested_action: str | None = (
        "Export ANTHROPIC_API_KEY (or AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY), "
        "or add them under 'env' in .claude/settings.local.json"
    )


@dataclass
class ConfigInvalidError(ConfigError):
    """The generated ~/.claude.json failed verification."""

    path: str = ""
    user_message: str = "Generated Claude configuration is invalid"


# ═══════════════════════════════════════════════════════════════════════════════
# Filesystem
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class WorkspaceNotFoundError(AmplifierError):
    """The project directory to mount does not exist."""

    path: str = ""
    user_message: str = ""
    suggested_action: str | None = "Check the project path and try again"

    def __post_init__(self) -> None:
        if not self.user_message:
            self.user_message = f"Project directory not found: {self.path}"


@dataclass
class DataDirectoryError(AmplifierError):
    """The data directory exists but is not a directory, or cannot be created."""

    path: str = ""
    user_message: str = ""

    def __post_init__(self) -> None:
        if not self.user_message:
            self.user_message = f"Data directory is not usable: {self.path}"


@dataclass
class TargetMissingError(AmplifierError):
    """The mounted target directory is absent inside the container."""

    path: str = ""
    user_message: str = ""
    suggested_action: str | None = None

    def __post_init__(self) -> None:
        if not self.user_message:
            self.user_message = f"Target directory not found: {self.path}"
        if self.suggested_action is None:
            self.suggested_action = (
                f"Make sure you mounted your project directory to {self.path}"
            )


# ═══════════════════════════════════════════════════════════════════════════════
# Image and Container
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class BuildContextNotFoundError(AmplifierError):
    """No directory with a Dockerfile could be found to build the image from."""

    searched: tuple[str, ...] = ()
    user_message: str = "Could not find a build context containing a Dockerfile"
    suggested_action: str | None = (
        "Pass --build-context pointing at the amplifier-anywhere checkout, "
        "or run from a directory that contains its Dockerfile"
    )

    def __post_init__(self) -> None:
        if self.debug_context is None and self.searched:
            self.debug_context = "Searched:\n" + "\n".join(f"  {p}" for p in self.searched)


@dataclass
class BuildFailedError(ToolError):
    """The runtime's build command exited nonzero."""

    image: str = ""
    user_message: str = ""
    suggested_action: str | None = "Review the build output above and fix the Dockerfile"

    def __post_init__(self) -> None:
        if not self.user_message:
            self.user_message = f"Failed to build image {self.image}"
        super().__post_init__()


@dataclass
class ContainerLaunchError(ToolError):
    """The runtime's run command could not be started at all."""

    user_message: str = "Failed to start container"
