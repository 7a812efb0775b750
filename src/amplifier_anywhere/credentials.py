"""
Credential resolution.

Credentials come from two sources:

1. The process environment
2. The "env" mapping of a Claude Code settings file
   (.claude/settings.local.json by default)

For every recognised key the environment wins; the settings file only
fills keys the environment does not have. The merged values are then
classified once into a CredentialDecision:

- AnthropicDirect when ANTHROPIC_API_KEY is present
- AWSBedrock when AWS_ACCESS_KEY_ID is present
- otherwise NoCredentialsError

The same classification runs again inside the container (see
entrypoint.py) against the forwarded environment only.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from .errors import NoCredentialsError
from .ui import print_warning

ANTHROPIC_API_KEY = "ANTHROPIC_API_KEY"
AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
AWS_DEFAULT_REGION = "AWS_DEFAULT_REGION"
AWS_REGION = "AWS_REGION"
CLAUDE_CODE_USE_BEDROCK = "CLAUDE_CODE_USE_BEDROCK"

# Order matters: it is the order variables are forwarded to the container
CREDENTIAL_KEYS: tuple[str, ...] = (
    ANTHROPIC_API_KEY,
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_DEFAULT_REGION,
    AWS_REGION,
    CLAUDE_CODE_USE_BEDROCK,
)

# Keys that count as present even when set to an empty string
FLAG_KEYS = frozenset({CLAUDE_CODE_USE_BEDROCK})


# ═══════════════════════════════════════════════════════════════════════════════
# Decision Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AnthropicDirect:
    """Talk to the Anthropic API directly with an API key."""

    api_key: str
    env: Mapping[str, str] = field(default_factory=dict, repr=False)

    @property
    def backend(self) -> str:
        return "Anthropic API"


@dataclass(frozen=True)
class AWSBedrock:
    """Talk to Claude through AWS Bedrock."""

    access_key_id: str
    secret_access_key: str | None = field(default=None, repr=False)
    region: str | None = None
    env: Mapping[str, str] = field(default_factory=dict, repr=False)

    @property
    def backend(self) -> str:
        return "AWS Bedrock"


CredentialDecision = Union[AnthropicDirect, AWSBedrock]


# ═══════════════════════════════════════════════════════════════════════════════
# Sources
# ═══════════════════════════════════════════════════════════════════════════════


def _is_present(key: str, value: str | None) -> bool:
    if value is None:
        return False
    if key in FLAG_KEYS:
        return True
    return value != ""


def load_settings_env(settings_path: Path | None) -> dict[str, str]:
    """
    Read recognised keys from a settings file's "env" mapping.

    A missing file yields no values. A file that cannot be parsed also
    yields no values, with a warning; it is never fatal.
    """
    if settings_path is None or not settings_path.is_file():
        return {}

    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        print_warning(f"Could not read settings file {settings_path}: {e}")
        return {}

    env = data.get("env") if isinstance(data, dict) else None
    if env is None:
        return {}
    if not isinstance(env, dict):
        print_warning(f"Ignoring settings file {settings_path}: 'env' is not a mapping")
        return {}

    values: dict[str, str] = {}
    for key in CREDENTIAL_KEYS:
        raw = env.get(key)
        if raw is None:
            continue
        if isinstance(raw, bool):
            raw = "1" if raw else ""
        values[key] = str(raw)
    return values


def merge_credential_sources(
    environ: Mapping[str, str],
    file_values: Mapping[str, str],
) -> dict[str, str]:
    """
    Merge recognised keys, environment first.

    Returns only keys that are present in at least one source, in
    CREDENTIAL_KEYS order.
    """
    merged: dict[str, str] = {}
    for key in CREDENTIAL_KEYS:
        for source in (environ, file_values):
            value = source.get(key)
            if value is not None and _is_present(key, value):
                merged[key] = value
                break
    return merged


# ═══════════════════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════════════════


def classify(values: Mapping[str, str]) -> CredentialDecision:
    """
    Turn merged credential values into a decision.

    When both an API key and AWS credentials are present the Anthropic
    API wins; every present key is still carried in `env`.

    Raises:
        NoCredentialsError: neither ANTHROPIC_API_KEY nor AWS_ACCESS_KEY_ID
    """
    env = {key: values[key] for key in CREDENTIAL_KEYS if _is_present(key, values.get(key))}

    api_key = env.get(ANTHROPIC_API_KEY)
    if api_key:
        return AnthropicDirect(api_key=api_key, env=env)

    access_key_id = env.get(AWS_ACCESS_KEY_ID)
    if access_key_id:
        return AWSBedrock(
            access_key_id=access_key_id,
            secret_access_key=env.get(AWS_SECRET_ACCESS_KEY),
            region=env.get(AWS_REGION) or env.get(AWS_DEFAULT_REGION),
            env=env,
        )

    raise NoCredentialsError()


def resolve_credentials(
    environ: Mapping[str, str],
    settings_path: Path | None = None,
) -> CredentialDecision:
    """Merge environment and settings-file values and classify them."""
    file_values = load_settings_env(settings_path)
    return classify(merge_credential_sources(environ, file_values))


def decision_from_env(environ: Mapping[str, str]) -> CredentialDecision:
    """Classify using the environment alone (used inside the container)."""
    return classify(merge_credential_sources(environ, {}))


# ═══════════════════════════════════════════════════════════════════════════════
# Display
# ═══════════════════════════════════════════════════════════════════════════════


def mask_secret(value: str, visible: int = 4) -> str:
    """Mask all but the last few characters of a secret."""
    if len(value) <= visible:
        return "****"
    return f"****{value[-visible:]}"


def describe_sources(
    environ: Mapping[str, str],
    file_values: Mapping[str, str],
) -> dict[str, str]:
    """Report where each recognised key was taken from ('env', 'settings', or 'unset')."""
    sources: dict[str, str] = {}
    for key in CREDENTIAL_KEYS:
        if _is_present(key, environ.get(key)):
            sources[key] = "env"
        elif _is_present(key, file_values.get(key)):
            sources[key] = "settings"
        else:
            sources[key] = "unset"
    return sources
