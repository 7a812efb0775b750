"""Shared fixtures."""

from unittest.mock import patch

import pytest

from amplifier_anywhere.runtime import RuntimeChoice, RuntimeName


@pytest.fixture
def temp_config_dir(tmp_path):
    """Point the launcher config file at a temporary directory."""
    config_dir = tmp_path / "config"
    with patch("amplifier_anywhere.config.CONFIG_FILE", config_dir / "config.json"):
        yield config_dir


@pytest.fixture
def docker_runtime():
    return RuntimeChoice(
        name=RuntimeName.DOCKER,
        executable="docker",
        version="Docker version 24.0.7, build afdd53b",
    )


@pytest.fixture
def podman_runtime():
    return RuntimeChoice(
        name=RuntimeName.PODMAN,
        executable="podman",
        version="podman version 4.9.3",
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove credential variables inherited from the developer's shell."""
    for key in (
        "ANTHROPIC_API_KEY",
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_DEFAULT_REGION",
        "AWS_REGION",
        "CLAUDE_CODE_USE_BEDROCK",
        "AMPLIFIER_IMAGE",
        "AMPLIFIER_RUNTIME",
    ):
        monkeypatch.delenv(key, raising=False)
