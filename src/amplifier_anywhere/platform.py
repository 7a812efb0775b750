"""
Host classification and mount path translation.

The container runtime needs the mount source in a form it can resolve:

- WSL: Windows-style paths (C:\\Users\\me) must become /mnt/c/Users/me
- Native Windows: Docker Desktop resolves Windows paths itself
- Unix (Linux, macOS): paths are passed unchanged

The host kind is resolved once into a HostKind value and every
consumer branches on that value.

WSL2 Considerations:
- Files on /mnt/c (Windows filesystem) are significantly slower
- Recommend using ~/projects inside WSL for optimal performance
"""

import os
import re
import sys
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

# Drive-letter prefix such as "C:\" or "d:/"
_DRIVE_PATH_RE = re.compile(r"^(?P<drive>[A-Za-z]):(?:[\\/](?P<rest>.*))?$", re.DOTALL)

PROC_VERSION = Path("/proc/version")


class HostKind(Enum):
    """Host environment classification for path translation."""

    WSL = "wsl"
    NATIVE_WINDOWS = "windows"
    UNIX = "unix"


# ═══════════════════════════════════════════════════════════════════════════════
# Host Detection
# ═══════════════════════════════════════════════════════════════════════════════


def _read_proc_version() -> str:
    try:
        return PROC_VERSION.read_text().lower()
    except OSError:
        return ""


def detect_host_kind(
    environ: Mapping[str, str] | None = None,
    platform: str | None = None,
    proc_version: str | None = None,
) -> HostKind:
    """
    Classify the host environment.

    WSL is recognised by the distribution marker (WSL_DISTRO_NAME) or a
    Microsoft kernel signature in /proc/version. All arguments default
    to the live process values and exist so detection can be tested.
    """
    env = os.environ if environ is None else environ
    plat = sys.platform if platform is None else platform

    if plat == "win32":
        return HostKind.NATIVE_WINDOWS

    if plat.startswith("linux"):
        if env.get("WSL_DISTRO_NAME"):
            return HostKind.WSL
        version_info = _read_proc_version() if proc_version is None else proc_version.lower()
        if "microsoft" in version_info or "wsl" in version_info:
            return HostKind.WSL

    return HostKind.UNIX


def get_host_name(host: HostKind) -> str:
    """Get human-readable host name."""
    names = {
        HostKind.WSL: "WSL (Windows Subsystem for Linux)",
        HostKind.NATIVE_WINDOWS: "Windows",
        HostKind.UNIX: "Unix",
    }
    return names[host]


# ═══════════════════════════════════════════════════════════════════════════════
# Path Operations
# ═══════════════════════════════════════════════════════════════════════════════


def translate_mount_path(path: str, host: HostKind) -> str:
    """
    Translate a resolved host path into the runtime's mount source string.

    Examples:
        >>> translate_mount_path("C:\\\\Users\\\\x", HostKind.WSL)
        '/mnt/c/Users/x'
        >>> translate_mount_path("/home/u/proj", HostKind.UNIX)
        '/home/u/proj'
    """
    if host is not HostKind.WSL:
        return path

    match = _DRIVE_PATH_RE.match(path)
    if match is None:
        # Already a path inside the WSL filesystem
        return path

    drive = match.group("drive").lower()
    rest = (match.group("rest") or "").replace("\\", "/").strip("/")
    if not rest:
        return f"/mnt/{drive}"
    return f"/mnt/{drive}/{rest}"


def is_windows_mount_path(path: Path | str) -> bool:
    """
    Check if a path is on the Windows filesystem (via /mnt/c, /mnt/d, etc.).

    In WSL2, paths like /mnt/c/Users/... are on the Windows filesystem
    and have significantly slower I/O performance.
    """
    path_str = str(path)

    if path_str.startswith("/mnt/") and len(path_str) > 5:
        drive_letter = path_str[5]
        if drive_letter.isalpha() and (len(path_str) == 6 or path_str[6] == "/"):
            return True

    return False


def check_path_performance(path: Path | str, host: HostKind) -> tuple[bool, str | None]:
    """
    Check if a project path has optimal performance characteristics.

    Returns:
        Tuple of (is_optimal, warning_message)
    """
    if host is not HostKind.WSL:
        return True, None

    if is_windows_mount_path(path):
        return False, (
            f"Path {path} is on the Windows filesystem.\n"
            "File operations will be significantly slower.\n"
            "Recommendation: Move to ~/projects inside WSL."
        )

    return True, None


def normalize_path(path: str | Path) -> Path:
    """Expand ~ and resolve to an absolute path."""
    if isinstance(path, str):
        path = Path(path)
    return path.expanduser().resolve()


# ═══════════════════════════════════════════════════════════════════════════════
# Platform-Specific Paths
# ═══════════════════════════════════════════════════════════════════════════════


def get_config_dir() -> Path:
    """
    Get the platform-appropriate configuration directory.

    - macOS: ~/Library/Application Support/amplifier-anywhere
    - Linux/WSL2: ~/.config/amplifier-anywhere
    - Windows: %APPDATA%\\amplifier-anywhere
    """
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "amplifier-anywhere"
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "amplifier-anywhere"
        return Path.home() / "AppData" / "Roaming" / "amplifier-anywhere"
    else:
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "amplifier-anywhere"
        return Path.home() / ".config" / "amplifier-anywhere"


def resolve_host_path(raw: str | Path, host: HostKind) -> Path:
    """
    Turn a user-supplied path into an absolute host path.

    Under WSL a Windows-style path (C:\\Users\\me\\proj) is first mapped to
    its /mnt/<drive> location so it can be checked on disk.
    """
    if host is HostKind.WSL:
        raw = translate_mount_path(str(raw), host)
    return normalize_path(raw)
