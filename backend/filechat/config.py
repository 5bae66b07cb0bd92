"""Filechat application configuration.

Loads settings from two YAML files:
  * filechat.settings.yaml: non-secret configuration
  * filechat.secrets.yaml : secrets (never committed)

The file locations can be overridden with the FILECHAT_SETTINGS and
FILECHAT_SECRETS environment variables.  Nothing outside this module reads
process environment; the API key is handed to the provider clients at
construction time.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("filechat.settings.yaml")
SECRETS_FILE  = Path("filechat.secrets.yaml")

MEGABYTE = 1024 * 1024


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class AnthropicSecrets(BaseModel):
    api_key: Optional[str] = None


class Secrets(BaseModel):
    anthropic: AnthropicSecrets = Field(default_factory=AnthropicSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ProviderSettings(BaseModel):
    """Completion + Files API settings."""
    base_url:                str       = "https://api.anthropic.com"
    api_version:             str       = "2023-06-01"
    beta_features:           List[str] = Field(
        default_factory=lambda: ["code-execution-2025-08-25", "files-api-2025-04-14"]
    )
    files_beta_features:     List[str] = Field(default_factory=lambda: ["files-api-2025-04-14"])
    default_model:           str       = "claude-sonnet-4-5"
    max_tokens:              int       = 8192
    enable_code_execution:   bool      = True
    connect_timeout_seconds: float     = 30.0
    read_timeout_seconds:    float     = 300.0
    write_timeout_seconds:   float     = 30.0
    model_aliases:           Dict[str, str] = Field(
        default_factory=lambda: {
            "claude-sonnet-4-5": "claude-sonnet-4-5-20250929",
            "claude-opus-4":     "claude-opus-4-20250514",
        }
    )

    @field_validator("connect_timeout_seconds", "read_timeout_seconds", "write_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value


class FileSettings(BaseModel):
    max_upload_bytes: int = 500 * MEGABYTE
    upload_dir:       str = "./tmp/uploads"


class ConversationSettings(BaseModel):
    file_freshness_days: int = 7
    storage_dir:         str = "./attachments"
    db_path:             str = "conversations.duckdb"

    @field_validator("file_freshness_days")
    @classmethod
    def _non_negative_days(cls, value: int) -> int:
        if value < 0:
            raise ValueError("file_freshness_days must be >= 0")
        return value


class LoggingSettings(BaseModel):
    level: str = "info"


class AppSettings(BaseModel):
    provider:     ProviderSettings     = Field(default_factory=ProviderSettings)
    files:        FileSettings         = Field(default_factory=FileSettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    logging:      LoggingSettings      = Field(default_factory=LoggingSettings)
    secrets:      Secrets              = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_settings(
    settings_file: Optional[Path] = None,
    secrets_file: Optional[Path] = None,
) -> AppSettings:
    """Load and merge settings + secrets into a single *AppSettings* object."""
    settings_path = settings_file or Path(os.environ.get("FILECHAT_SETTINGS", SETTINGS_FILE))
    secrets_path  = secrets_file or Path(os.environ.get("FILECHAT_SECRETS", SECRETS_FILE))

    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(secrets_path)

    # Merge: secrets live under the "secrets" key in AppSettings
    settings_data["secrets"] = secrets_data

    app_settings = AppSettings(**settings_data)
    logger.info(
        "Settings loaded (model=%s, code_execution=%s, freshness_days=%s, api_key=%s)",
        app_settings.provider.default_model,
        app_settings.provider.enable_code_execution,
        app_settings.conversation.file_freshness_days,
        "set" if app_settings.secrets.anthropic.api_key else "missing",
    )
    return app_settings


_config: Optional[AppSettings] = None


def get_config() -> AppSettings:
    """Return the cached settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_settings()
    return _config


def set_config(config: Optional[AppSettings]) -> None:
    """Replace (or clear) the cached settings."""
    global _config
    _config = config
