"""Tests for credential resolution."""

import json

import pytest

from amplifier_anywhere.credentials import (
    AnthropicDirect,
    AWSBedrock,
    classify,
    decision_from_env,
    describe_sources,
    load_settings_env,
    mask_secret,
    merge_credential_sources,
    resolve_credentials,
)
from amplifier_anywhere.errors import NoCredentialsError


def _write_settings(path, env):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"env": env}))
    return path


# ═══════════════════════════════════════════════════════════════════════════════
# Settings File
# ═══════════════════════════════════════════════════════════════════════════════


class TestLoadSettingsEnv:
    """Tests for load_settings_env()."""

    def test_missing_file_yields_nothing(self, tmp_path):
        assert load_settings_env(tmp_path / "nope.json") == {}

    def test_none_path_yields_nothing(self):
        assert load_settings_env(None) == {}

    def test_reads_recognised_keys_only(self, tmp_path):
        path = _write_settings(
            tmp_path / ".claude" / "settings.local.json",
            {"ANTHROPIC_API_KEY": "sk-ant-file", "EDITOR": "vim"},
        )
        assert load_settings_env(path) == {"ANTHROPIC_API_KEY": "sk-ant-file"}

    def test_malformed_file_is_not_fatal(self, tmp_path):
        path = tmp_path / "settings.local.json"
        path.write_text("{not json")
        assert load_settings_env(path) == {}

    def test_env_not_a_mapping(self, tmp_path):
        path = tmp_path / "settings.local.json"
        path.write_text(json.dumps({"env": ["ANTHROPIC_API_KEY"]}))
        assert load_settings_env(path) == {}

    def test_non_string_values_are_coerced(self, tmp_path):
        path = _write_settings(
            tmp_path / "settings.local.json",
            {"CLAUDE_CODE_USE_BEDROCK": True, "AWS_REGION": None, "AWS_ACCESS_KEY_ID": 12345},
        )
        assert load_settings_env(path) == {
            "AWS_ACCESS_KEY_ID": "12345",
            "CLAUDE_CODE_USE_BEDROCK": "1",
        }


# ═══════════════════════════════════════════════════════════════════════════════
# Merge and Classification
# ═══════════════════════════════════════════════════════════════════════════════


class TestMergeCredentialSources:
    """Tests for merge_credential_sources()."""

    def test_environment_wins(self):
        merged = merge_credential_sources(
            {"ANTHROPIC_API_KEY": "from-env"},
            {"ANTHROPIC_API_KEY": "from-file", "AWS_REGION": "eu-west-1"},
        )
        assert merged == {"ANTHROPIC_API_KEY": "from-env", "AWS_REGION": "eu-west-1"}

    def test_empty_env_value_falls_back_to_file(self):
        merged = merge_credential_sources({"ANTHROPIC_API_KEY": ""}, {"ANTHROPIC_API_KEY": "k"})
        assert merged == {"ANTHROPIC_API_KEY": "k"}

    def test_bedrock_flag_counts_when_empty(self):
        merged = merge_credential_sources({"CLAUDE_CODE_USE_BEDROCK": ""}, {})
        assert merged == {"CLAUDE_CODE_USE_BEDROCK": ""}

    def test_unrelated_variables_ignored(self):
        assert merge_credential_sources({"HOME": "/root", "PATH": "/bin"}, {}) == {}


class TestClassify:
    """Tests for classify()."""

    def test_anthropic_key(self):
        decision = classify({"ANTHROPIC_API_KEY": "sk-ant-abc"})
        assert isinstance(decision, AnthropicDirect)
        assert decision.api_key == "sk-ant-abc"
        assert decision.backend == "Anthropic API"

    def test_bedrock(self):
        decision = classify(
            {
                "AWS_ACCESS_KEY_ID": "AKIAEXAMPLE",
                "AWS_SECRET_ACCESS_KEY": "secret",
                "AWS_DEFAULT_REGION": "us-east-1",
            }
        )
        assert isinstance(decision, AWSBedrock)
        assert decision.access_key_id == "AKIAEXAMPLE"
        assert decision.region == "us-east-1"
        assert decision.backend == "AWS Bedrock"

    def test_aws_region_preferred_over_default_region(self):
        decision = classify(
            {"AWS_ACCESS_KEY_ID": "a", "AWS_DEFAULT_REGION": "us-east-1", "AWS_REGION": "eu-north-1"}
        )
        assert decision.region == "eu-north-1"

    def test_anthropic_wins_when_both_present(self):
        """Both backends configured: the API key is used, AWS keys still forwarded."""
        decision = classify({"ANTHROPIC_API_KEY": "sk-ant-abc", "AWS_ACCESS_KEY_ID": "a"})
        assert isinstance(decision, AnthropicDirect)
        assert decision.env == {"ANTHROPIC_API_KEY": "sk-ant-abc", "AWS_ACCESS_KEY_ID": "a"}

    def test_secret_alone_is_not_enough(self):
        with pytest.raises(NoCredentialsError) as exc_info:
            classify({"AWS_SECRET_ACCESS_KEY": "secret", "CLAUDE_CODE_USE_BEDROCK": "1"})
        assert exc_info.value.exit_code == 3

    def test_nothing_present(self):
        with pytest.raises(NoCredentialsError) as exc_info:
            classify({})
        assert "ANTHROPIC_API_KEY" in exc_info.value.user_message


class TestResolveCredentials:
    """Tests for resolve_credentials() and decision_from_env()."""

    def test_settings_file_supplies_missing_key(self, tmp_path):
        path = _write_settings(tmp_path / "s.json", {"ANTHROPIC_API_KEY": "sk-ant-file"})
        decision = resolve_credentials({}, path)
        assert isinstance(decision, AnthropicDirect)
        assert decision.api_key == "sk-ant-file"

    def test_environment_overrides_settings_file(self, tmp_path):
        path = _write_settings(tmp_path / "s.json", {"ANTHROPIC_API_KEY": "sk-ant-file"})
        decision = resolve_credentials({"ANTHROPIC_API_KEY": "sk-ant-env"}, path)
        assert decision.api_key == "sk-ant-env"

    def test_mixed_sources(self, tmp_path):
        """AWS id from env, secret from the settings file."""
        path = _write_settings(tmp_path / "s.json", {"AWS_SECRET_ACCESS_KEY": "file-secret"})
        decision = resolve_credentials({"AWS_ACCESS_KEY_ID": "AKIA"}, path)
        assert isinstance(decision, AWSBedrock)
        assert decision.secret_access_key == "file-secret"
        assert decision.env == {"AWS_ACCESS_KEY_ID": "AKIA", "AWS_SECRET_ACCESS_KEY": "file-secret"}

    def test_decision_from_env_ignores_files(self):
        decision = decision_from_env({"AWS_ACCESS_KEY_ID": "AKIA", "HOME": "/root"})
        assert isinstance(decision, AWSBedrock)
        assert decision.env == {"AWS_ACCESS_KEY_ID": "AKIA"}


# ═══════════════════════════════════════════════════════════════════════════════
# Display
# ═══════════════════════════════════════════════════════════════════════════════


class TestDisplayHelpers:
    def test_mask_secret(self):
        assert mask_secret("sk-ant-abcdef1234") == "****1234"
        assert mask_secret("abc") == "****"

    def test_describe_sources(self):
        sources = describe_sources({"ANTHROPIC_API_KEY": "k"}, {"AWS_REGION": "eu-west-1"})
        assert sources["ANTHROPIC_API_KEY"] == "env"
        assert sources["AWS_REGION"] == "settings"
        assert sources["AWS_ACCESS_KEY_ID"] == "unset"
