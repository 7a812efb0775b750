"""
Container assembly and launch.

A launch is one `<runtime> run -it --rm` invocation:

- the project directory is mounted at /workspace
- the data directory is mounted at /app/amplifier-data
- every resolved credential key is forwarded verbatim
- TARGET_DIR and AMPLIFIER_DATA_DIR tell the entrypoint where things are

The container name is unique per invocation (project name + pid) so a
second launch never collides with one that is still running. The run is
attempted once; its exit code becomes the launcher's exit code.
"""

import os
import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .config import CONTAINER_DATA_DIR, CONTAINER_WORKSPACE
from .credentials import CREDENTIAL_KEYS, CredentialDecision
from .errors import ContainerLaunchError, DataDirectoryError, WorkspaceNotFoundError
from .platform import HostKind, translate_mount_path
from .runtime import RuntimeChoice
from .subprocess_utils import run_command_bool

CONTAINER_NAME_PREFIX = "amplifier"

PURPOSE_PROJECT = "project"
PURPOSE_DATA = "data"


@dataclass(frozen=True)
class MountSpec:
    """A host directory bound into the container."""

    host_path: Path
    container_path: str
    purpose: str
    source: str = ""

    def __post_init__(self) -> None:
        if not self.source:
            object.__setattr__(self, "source", str(self.host_path))

    @property
    def volume_arg(self) -> str:
        return f"{self.source}:{self.container_path}"


@dataclass(frozen=True)
class ContainerConfig:
    """Everything needed for a single `run` call."""

    image_name: str
    container_name: str
    env_vars: dict[str, str] = field(default_factory=dict)
    mounts: tuple[MountSpec, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# Mounts
# ═══════════════════════════════════════════════════════════════════════════════


def prepare_data_dir(data_dir: Path) -> Path:
    """
    Create the data directory if it does not exist.

    Raises:
        DataDirectoryError: path exists but is not a directory, or mkdir fails
    """
    if data_dir.exists() and not data_dir.is_dir():
        raise DataDirectoryError(path=str(data_dir))
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DataDirectoryError(
            path=str(data_dir),
            user_message=f"Could not create data directory {data_dir}: {e}",
        )
    return data_dir


def build_mounts(project_dir: Path, data_dir: Path, host: HostKind) -> tuple[MountSpec, MountSpec]:
    """
    Build the project and data mounts, translating sources for the host.

    Raises:
        WorkspaceNotFoundError: project directory is missing
        DataDirectoryError: data directory is missing
    """
    if not project_dir.is_dir():
        raise WorkspaceNotFoundError(path=str(project_dir))
    if not data_dir.is_dir():
        raise DataDirectoryError(path=str(data_dir))

    project = MountSpec(
        host_path=project_dir,
        container_path=CONTAINER_WORKSPACE,
        purpose=PURPOSE_PROJECT,
        source=translate_mount_path(str(project_dir), host),
    )
    data = MountSpec(
        host_path=data_dir,
        container_path=CONTAINER_DATA_DIR,
        purpose=PURPOSE_DATA,
        source=translate_mount_path(str(data_dir), host),
    )
    return project, data


# ═══════════════════════════════════════════════════════════════════════════════
# Container Config
# ═══════════════════════════════════════════════════════════════════════════════


def generate_container_name(project_dir: Path, pid: int | None = None) -> str:
    """
    Generate a per-invocation container name.

    Format: amplifier-<project_name>-<pid>
    Example: amplifier-my-app-48213
    """
    project_name = project_dir.name.lower()
    project_name = re.sub(r"[^a-z0-9]", "-", project_name)
    project_name = re.sub(r"-+", "-", project_name).strip("-") or "project"

    return f"{CONTAINER_NAME_PREFIX}-{project_name}-{os.getpid() if pid is None else pid}"


def build_container_env(decision: CredentialDecision) -> dict[str, str]:
    """Forwarded credentials plus the fixed directory variables."""
    env = {key: decision.env[key] for key in CREDENTIAL_KEYS if key in decision.env}
    env["TARGET_DIR"] = CONTAINER_WORKSPACE
    env["AMPLIFIER_DATA_DIR"] = CONTAINER_DATA_DIR
    return env


def build_container_config(
    image: str,
    decision: CredentialDecision,
    mounts: Sequence[MountSpec],
    container_name: str,
) -> ContainerConfig:
    """Assemble the immutable run configuration."""
    return ContainerConfig(
        image_name=image,
        container_name=container_name,
        env_vars=build_container_env(decision),
        mounts=tuple(mounts),
    )


def build_run_command(
    runtime: RuntimeChoice,
    config: ContainerConfig,
    tty: bool = True,
) -> list[str]:
    """
    Build the interactive, auto-removing run command.

    Args:
        runtime: Selected container runtime
        config: Container configuration
        tty: Allocate a pseudo-terminal (-t); off when stdin is not a terminal

    Returns:
        Command as list of strings
    """
    cmd = runtime.command("run", "-it" if tty else "-i", "--rm")
    cmd.extend(["--name", config.container_name])

    for key, value in config.env_vars.items():
        cmd.extend(["-e", f"{key}={value}"])

    for mount in config.mounts:
        cmd.extend(["-v", mount.volume_arg])

    cmd.append(config.image_name)
    return cmd


def redact_command(cmd: Sequence[str]) -> str:
    """Render a run command for display with credential values hidden."""
    shown: list[str] = []
    for arg in cmd:
        key, sep, _ = arg.partition("=")
        if sep and key in CREDENTIAL_KEYS:
            shown.append(f"{key}=****")
        else:
            shown.append(arg)
    return " ".join(shown)


# ═══════════════════════════════════════════════════════════════════════════════
# Execution
# ═══════════════════════════════════════════════════════════════════════════════


def check_mount_access(runtime: RuntimeChoice, config: ContainerConfig) -> list[MountSpec]:
    """
    List each mount through a throwaway container.

    Returns the mounts that could not be listed. Some runtime/OS
    combinations report false negatives, so callers only warn.
    """
    failed: list[MountSpec] = []
    for mount in config.mounts:
        cmd = runtime.command(
            "run",
            "--rm",
            "--entrypoint",
            "ls",
            "-v",
            mount.volume_arg,
            config.image_name,
            mount.container_path,
        )
        if not run_command_bool(cmd):
            failed.append(mount)
    return failed


def run_container(cmd: list[str]) -> int:
    """
    Run the container in the foreground and return its exit code.

    Raises:
        ContainerLaunchError: the runtime executable could not be started
    """
    try:
        result = subprocess.run(cmd)
    except FileNotFoundError:
        raise ContainerLaunchError(
            user_message=f"Command not found: {cmd[0]}",
            suggested_action="Ensure Docker or Podman is installed and in your PATH",
            command=redact_command(cmd),
        )
    except OSError as e:
        raise ContainerLaunchError(
            user_message=f"Failed to start container: {e}",
            command=redact_command(cmd),
        )
    return result.returncode
