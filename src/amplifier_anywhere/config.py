"""
Configuration management.

Launcher defaults live in DEFAULT_CONFIG and can be overridden by an
optional JSON file in the platform config directory, then by
environment variables, then by command-line flags.
"""

import copy
import json
import os
from collections.abc import Mapping
from pathlib import Path

from .platform import get_config_dir

CONFIG_FILE = get_config_dir() / "config.json"

# Container-side contract
CONTAINER_WORKSPACE = "/workspace"
CONTAINER_DATA_DIR = "/app/amplifier-data"
BUILD_DESCRIPTOR = "Dockerfile"

# Environment overrides
ENV_IMAGE = "AMPLIFIER_IMAGE"
ENV_RUNTIME = "AMPLIFIER_RUNTIME"


DEFAULT_CONFIG = {
    "version": "1.0.0",
    "image": "amplifier-claude:latest",
    "runtime": None,
    "data_dir": "./amplifier-data",
    "settings_file": ".claude/settings.local.json",
    "mount_check": True,
}


def get_config_file() -> Path:
    """Get the configuration file path."""
    return CONFIG_FILE


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base."""

    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value

    return base


def load_config(environ: Mapping[str, str] | None = None) -> dict:
    """
    Load configuration: defaults, then config file, then environment.

    A missing or malformed config file is ignored.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    deep_merge(config, load_user_config())

    env = os.environ if environ is None else environ
    if env.get(ENV_IMAGE):
        config["image"] = env[ENV_IMAGE]
    if env.get(ENV_RUNTIME):
        config["runtime"] = env[ENV_RUNTIME]

    return config


def save_config(config: dict) -> None:
    """Save configuration to file."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)

    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)


def load_user_config() -> dict:
    """Load only what the user has saved, without defaults or env overrides."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def parse_config_value(key: str, raw: str) -> object:
    """
    Coerce a command-line string to the type of the default.

    Raises:
        KeyError: key is not a known setting
        ValueError: value cannot be coerced
    """
    if key not in DEFAULT_CONFIG or key == "version":
        raise KeyError(key)

    default = DEFAULT_CONFIG[key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"Expected true or false for {key}, got {raw!r}")
    if raw.strip().lower() in ("", "none", "null"):
        return None
    return raw


def set_config_value(key: str, raw: str) -> object:
    """Persist a single setting to the user config file."""
    value = parse_config_value(key, raw)
    user_config = load_user_config()
    user_config[key] = value
    save_config(user_config)
    return value
