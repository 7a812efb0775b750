"""Tests for host detection and mount path translation."""

from pathlib import Path

import pytest

from amplifier_anywhere.platform import (
    HostKind,
    check_path_performance,
    detect_host_kind,
    is_windows_mount_path,
    resolve_host_path,
    translate_mount_path,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Host Detection
# ═══════════════════════════════════════════════════════════════════════════════


class TestDetectHostKind:
    """Tests for detect_host_kind()."""

    def test_windows_platform(self):
        assert detect_host_kind({}, "win32", "") is HostKind.NATIVE_WINDOWS

    def test_wsl_distro_marker(self):
        """WSL_DISTRO_NAME alone is enough."""
        env = {"WSL_DISTRO_NAME": "Ubuntu"}
        assert detect_host_kind(env, "linux", "Linux version 6.5.0-generic") is HostKind.WSL

    def test_wsl_kernel_signature(self):
        """A Microsoft kernel string identifies WSL without the marker."""
        proc = "Linux version 5.15.133.1-microsoft-standard-WSL2"
        assert detect_host_kind({}, "linux", proc) is HostKind.WSL

    def test_plain_linux(self):
        assert detect_host_kind({}, "linux", "Linux version 6.5.0-generic") is HostKind.UNIX

    def test_macos(self):
        assert detect_host_kind({"WSL_DISTRO_NAME": "x"}, "darwin", "") is HostKind.UNIX


# ═══════════════════════════════════════════════════════════════════════════════
# Path Translation
# ═══════════════════════════════════════════════════════════════════════════════


class TestTranslateMountPath:
    """Tests for translate_mount_path()."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("C:\\Users\\x", "/mnt/c/Users/x"),
            ("D:/work/proj", "/mnt/d/work/proj"),
            ("c:\\Users\\Me\\My Project\\", "/mnt/c/Users/Me/My Project"),
            ("C:", "/mnt/c"),
            ("C:\\", "/mnt/c"),
        ],
    )
    def test_wsl_drive_paths(self, raw, expected):
        assert translate_mount_path(raw, HostKind.WSL) == expected

    def test_wsl_native_path_unchanged(self):
        assert translate_mount_path("/home/u/proj", HostKind.WSL) == "/home/u/proj"

    def test_unix_unchanged(self):
        assert translate_mount_path("/home/u/proj", HostKind.UNIX) == "/home/u/proj"

    def test_native_windows_unchanged(self):
        """Docker Desktop resolves Windows paths itself."""
        assert translate_mount_path("C:\\Users\\x", HostKind.NATIVE_WINDOWS) == "C:\\Users\\x"


class TestWindowsMountPath:
    """Tests for WSL performance checks."""

    def test_is_windows_mount_path(self):
        assert is_windows_mount_path("/mnt/c/Users/x")
        assert is_windows_mount_path("/mnt/d")
        assert not is_windows_mount_path("/mnt/data/x")
        assert not is_windows_mount_path("/home/u")

    def test_performance_warning_only_on_wsl(self):
        ok, warning = check_path_performance("/mnt/c/Users/x", HostKind.WSL)
        assert not ok
        assert "Windows filesystem" in warning

        assert check_path_performance("/mnt/c/Users/x", HostKind.UNIX) == (True, None)


class TestResolveHostPath:
    """Tests for resolve_host_path()."""

    def test_relative_path_becomes_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert resolve_host_path(".", HostKind.UNIX) == tmp_path.resolve()

    def test_wsl_windows_path_maps_to_mnt(self):
        assert resolve_host_path("C:\\Users\\x", HostKind.WSL) == Path("/mnt/c/Users/x")
