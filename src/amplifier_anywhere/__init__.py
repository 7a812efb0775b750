"""Run Claude Code with Amplifier inside a container, against any project directory."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("amplifier-anywhere")
except PackageNotFoundError:
    __version__ = "0.0.0"
