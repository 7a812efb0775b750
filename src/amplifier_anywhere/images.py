"""
Image existence check and on-demand build.

ensure_image() is idempotent: once the image exists every later call
is a no-op. The build context is located by priority:

1. An explicitly supplied directory
2. The directory the launcher is installed from (a source checkout)
3. The current working directory

Candidates 2 and 3 only qualify when they contain a Dockerfile.
"""

import subprocess
from pathlib import Path

from rich.markup import escape

from .config import BUILD_DESCRIPTOR
from .errors import BuildContextNotFoundError, BuildFailedError
from .runtime import RuntimeChoice
from .subprocess_utils import run_command_bool
from .ui import console

# src/amplifier_anywhere/images.py -> repository root
LAUNCHER_DIR = Path(__file__).resolve().parents[2]


def image_exists(runtime: RuntimeChoice, image: str) -> bool:
    """Check whether the image is present in the runtime's local store."""
    return run_command_bool(runtime.command("image", "inspect", image))


def has_build_descriptor(directory: Path) -> bool:
    """Check if a directory contains a Dockerfile."""
    return (directory / BUILD_DESCRIPTOR).is_file()


def locate_build_context(
    explicit: Path | None = None,
    launcher_dir: Path | None = None,
    cwd: Path | None = None,
) -> Path:
    """
    Find the directory to build the image from.

    Raises:
        BuildContextNotFoundError: no candidate qualifies
    """
    if explicit is not None:
        explicit = explicit.expanduser().resolve()
        if explicit.is_dir() and has_build_descriptor(explicit):
            return explicit
        raise BuildContextNotFoundError(
            user_message=f"Build context {explicit} does not contain a {BUILD_DESCRIPTOR}",
            searched=(str(explicit),),
        )

    launcher = launcher_dir if launcher_dir is not None else LAUNCHER_DIR
    current = cwd if cwd is not None else Path.cwd()

    searched: list[str] = []
    for candidate in (launcher, current):
        searched.append(str(candidate))
        if candidate.is_dir() and has_build_descriptor(candidate):
            return candidate

    raise BuildContextNotFoundError(searched=tuple(searched))


def build_image(runtime: RuntimeChoice, image: str, context: Path) -> None:
    """
    Run the runtime's build command, streaming output to the terminal.

    Raises:
        BuildFailedError: build exited nonzero or could not start
    """
    cmd = runtime.command("build", "-t", image, str(context))
    console.print(f"[cyan]Building image {escape(image)} from {escape(str(context))}...[/cyan]")
    try:
        result = subprocess.run(cmd)
    except OSError as e:
        raise BuildFailedError(image=image, command=" ".join(cmd), stderr=str(e))

    if result.returncode != 0:
        raise BuildFailedError(
            image=image,
            command=" ".join(cmd),
            stderr=f"exit code {result.returncode}",
        )


def ensure_image(
    runtime: RuntimeChoice,
    image: str,
    build_context: Path | None = None,
    *,
    rebuild: bool = False,
    launcher_dir: Path | None = None,
    cwd: Path | None = None,
) -> bool:
    """
    Make sure the image exists, building it if needed.

    Returns:
        True if a build was run, False if the image was already present.

    Raises:
        BuildContextNotFoundError: image missing and nowhere to build from
        BuildFailedError: the build failed
    """
    if not rebuild and image_exists(runtime, image):
        return False

    context = locate_build_context(build_context, launcher_dir=launcher_dir, cwd=cwd)
    build_image(runtime, image, context)
    return True
