"""Tests for settings models and the YAML loader.

Covers:
* ProviderSettings     : defaults, timeout validation
* ConversationSettings : freshness validation
* load_settings        : YAML merge, env-var file overrides, missing files
"""

from __future__ import annotations

import pytest
import yaml
from pydantic import ValidationError

from filechat.config import (
    AppSettings,
    ConversationSettings,
    ProviderSettings,
    get_config,
    load_settings,
    set_config,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestProviderSettings:
    def test_defaults(self):
        cfg = ProviderSettings()
        assert cfg.default_model == "claude-sonnet-4-5"
        assert cfg.enable_code_execution is True
        assert cfg.connect_timeout_seconds == 30.0
        assert cfg.read_timeout_seconds == 300.0
        assert cfg.model_aliases["claude-sonnet-4-5"] == "claude-sonnet-4-5-20250929"

    def test_beta_headers(self):
        cfg = ProviderSettings()
        assert "code-execution-2025-08-25" in cfg.beta_features
        assert cfg.files_beta_features == ["files-api-2025-04-14"]

    @pytest.mark.parametrize("field", ["connect_timeout_seconds", "read_timeout_seconds"])
    def test_non_positive_timeout_rejected(self, field):
        with pytest.raises(ValidationError):
            ProviderSettings(**{field: 0})


class TestConversationSettings:
    def test_default_freshness(self):
        assert ConversationSettings().file_freshness_days == 7

    def test_zero_freshness_allowed(self):
        assert ConversationSettings(file_freshness_days=0).file_freshness_days == 0

    def test_negative_freshness_rejected(self):
        with pytest.raises(ValidationError):
            ConversationSettings(file_freshness_days=-1)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_merges_settings_and_secrets(self, tmp_path):
        settings_file = tmp_path / "settings.yaml"
        secrets_file = tmp_path / "secrets.yaml"
        settings_file.write_text(yaml.safe_dump({
            "provider": {"default_model": "claude-opus-4", "enable_code_execution": False},
            "files": {"max_upload_bytes": 1024},
        }))
        secrets_file.write_text(yaml.safe_dump({"anthropic": {"api_key": "sk-test"}}))

        cfg = load_settings(settings_file, secrets_file)

        assert cfg.provider.default_model == "claude-opus-4"
        assert cfg.provider.enable_code_execution is False
        assert cfg.files.max_upload_bytes == 1024
        assert cfg.secrets.anthropic.api_key == "sk-test"

    def test_missing_files_give_defaults(self, tmp_path):
        cfg = load_settings(tmp_path / "nope.yaml", tmp_path / "nope-secrets.yaml")
        assert cfg == AppSettings()
        assert cfg.secrets.anthropic.api_key is None

    def test_empty_yaml_gives_defaults(self, tmp_path):
        empty = tmp_path / "empty.yaml"
        empty.write_text("")
        assert load_settings(empty, empty).provider == ProviderSettings()

    def test_env_overrides_file_locations(self, tmp_path, monkeypatch):
        settings_file = tmp_path / "custom-settings.yaml"
        settings_file.write_text(yaml.safe_dump({"logging": {"level": "debug"}}))
        monkeypatch.setenv("FILECHAT_SETTINGS", str(settings_file))
        monkeypatch.setenv("FILECHAT_SECRETS", str(tmp_path / "absent.yaml"))

        assert load_settings().logging.level == "debug"


class TestConfigCache:
    def test_set_and_get(self):
        cfg = AppSettings(provider={"default_model": "claude-opus-4"})
        set_config(cfg)
        try:
            assert get_config() is cfg
        finally:
            set_config(None)
