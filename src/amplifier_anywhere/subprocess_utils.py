"""
Thin wrappers around subprocess for probing external tools.

Probes never raise for a missing executable or a nonzero exit;
callers get None/False and decide what is fatal.
"""

import subprocess


def run_command(cmd: list[str], timeout: float | None = None) -> str | None:
    """
    Run a command and return its stripped stdout.

    Returns None if the command is missing, fails, or times out.
    """
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, PermissionError, OSError):
        return None

    if result.returncode != 0:
        return None
    return result.stdout.strip()


def run_command_bool(cmd: list[str], timeout: float | None = None) -> bool:
    """Run a command and report whether it exited with status 0."""
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, PermissionError, OSError):
        return False
    return result.returncode == 0
