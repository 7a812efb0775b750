"""Tests for image existence checks and on-demand builds."""

from subprocess import CompletedProcess
from unittest.mock import patch

import pytest

from amplifier_anywhere.errors import BuildContextNotFoundError, BuildFailedError
from amplifier_anywhere.images import ensure_image, image_exists, locate_build_context


def _context(path):
    path.mkdir(parents=True, exist_ok=True)
    (path / "Dockerfile").write_text("FROM ubuntu:22.04\n")
    return path


# ═══════════════════════════════════════════════════════════════════════════════
# Build Context
# ═══════════════════════════════════════════════════════════════════════════════


class TestLocateBuildContext:
    """Tests for locate_build_context()."""

    def test_explicit_directory(self, tmp_path):
        explicit = _context(tmp_path / "ctx")
        assert locate_build_context(explicit) == explicit.resolve()

    def test_explicit_without_dockerfile(self, tmp_path):
        """An explicit context must contain a Dockerfile; no fallback."""
        empty = tmp_path / "empty"
        empty.mkdir()
        _context(tmp_path / "cwd")
        with pytest.raises(BuildContextNotFoundError):
            locate_build_context(empty, cwd=tmp_path / "cwd")

    def test_launcher_dir_before_cwd(self, tmp_path):
        launcher = _context(tmp_path / "launcher")
        cwd = _context(tmp_path / "cwd")
        assert locate_build_context(launcher_dir=launcher, cwd=cwd) == launcher

    def test_cwd_when_launcher_has_no_dockerfile(self, tmp_path):
        launcher = tmp_path / "launcher"
        launcher.mkdir()
        cwd = _context(tmp_path / "cwd")
        assert locate_build_context(launcher_dir=launcher, cwd=cwd) == cwd

    def test_nothing_found(self, tmp_path):
        launcher = tmp_path / "launcher"
        launcher.mkdir()
        with pytest.raises(BuildContextNotFoundError) as exc_info:
            locate_build_context(launcher_dir=launcher, cwd=tmp_path)
        assert exc_info.value.searched == (str(launcher), str(tmp_path))
        assert str(launcher) in exc_info.value.debug_context


# ═══════════════════════════════════════════════════════════════════════════════
# Image Existence and Build
# ═══════════════════════════════════════════════════════════════════════════════


class TestImageExists:
    def test_uses_image_inspect(self, docker_runtime):
        with patch("amplifier_anywhere.images.run_command_bool", return_value=True) as mock_bool:
            assert image_exists(docker_runtime, "amplifier-claude:latest")
        mock_bool.assert_called_once_with(["docker", "image", "inspect", "amplifier-claude:latest"])


class TestEnsureImage:
    """Tests for ensure_image()."""

    def test_present_image_is_not_rebuilt(self, docker_runtime, tmp_path):
        with (
            patch("amplifier_anywhere.images.image_exists", return_value=True),
            patch("amplifier_anywhere.images.subprocess.run") as mock_run,
        ):
            assert ensure_image(docker_runtime, "img", launcher_dir=tmp_path, cwd=tmp_path) is False
        mock_run.assert_not_called()

    def test_missing_image_is_built_once(self, podman_runtime, tmp_path):
        """Second call sees the built image and does nothing."""
        ctx = _context(tmp_path / "ctx")
        built = []

        def fake_exists(runtime, image):
            return bool(built)

        def fake_run(cmd):
            built.append(cmd)
            return CompletedProcess(cmd, 0)

        with (
            patch("amplifier_anywhere.images.image_exists", side_effect=fake_exists),
            patch("amplifier_anywhere.images.subprocess.run", side_effect=fake_run),
        ):
            assert ensure_image(podman_runtime, "img:1", launcher_dir=ctx, cwd=tmp_path) is True
            assert ensure_image(podman_runtime, "img:1", launcher_dir=ctx, cwd=tmp_path) is False

        assert built == [["podman", "build", "-t", "img:1", str(ctx)]]

    def test_rebuild_ignores_existing_image(self, docker_runtime, tmp_path):
        ctx = _context(tmp_path / "ctx")
        with (
            patch("amplifier_anywhere.images.image_exists", return_value=True),
            patch(
                "amplifier_anywhere.images.subprocess.run",
                return_value=CompletedProcess([], 0),
            ) as mock_run,
        ):
            assert ensure_image(docker_runtime, "img", ctx, rebuild=True) is True
        mock_run.assert_called_once()

    def test_build_failure(self, docker_runtime, tmp_path):
        ctx = _context(tmp_path / "ctx")
        with (
            patch("amplifier_anywhere.images.image_exists", return_value=False),
            patch(
                "amplifier_anywhere.images.subprocess.run",
                return_value=CompletedProcess([], 1),
            ),
        ):
            with pytest.raises(BuildFailedError) as exc_info:
                ensure_image(docker_runtime, "img", ctx)
        assert exc_info.value.exit_code == 4
        assert "docker build -t img" in exc_info.value.debug_context

    def test_missing_context(self, docker_runtime, tmp_path):
        with patch("amplifier_anywhere.images.image_exists", return_value=False):
            with pytest.raises(BuildContextNotFoundError):
                ensure_image(docker_runtime, "img", launcher_dir=tmp_path, cwd=tmp_path)
