"""
Follow-Up Service Configuration

Centralized configuration loaded from the environment (and a local .env file).
Required secrets are checked once at process start via ``Settings.require()``.
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()


# Days of inactivity before a deal counts as stale, keyed by lower-cased stage.
DEFAULT_STALENESS_THRESHOLDS: Dict[str, int] = {
    "discovery": 7,
    "qualification": 5,
    "proposal": 5,
    "negotiation": 3,
    "contract sent": 2,
    "default": 5,
}

ON_ITEM_ERROR_MODES = ("abort", "skip")


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Configuration for the follow-up service."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ
        self._issues: List[str] = []

        # LLM
        self.OPENAI_API_KEY: str = env.get("OPENAI_API_KEY", "")
        self.OPENAI_API_BASE: str = env.get("OPENAI_API_BASE", "https://api.openai.com/v1")
        self.LLM_MODEL: str = env.get("LLM_MODEL", "gpt-4o-mini")
        self.LLM_TIMEOUT_MS: int = self._int(env, "LLM_TIMEOUT_MS", 60000)

        # CRM
        self.HUBSPOT_ACCESS_TOKEN: str = env.get("HUBSPOT_ACCESS_TOKEN", "")
        self.HUBSPOT_API_BASE: str = env.get("HUBSPOT_API_BASE", "https://api.hubapi.com")
        self.HUBSPOT_TIMEOUT_MS: int = self._int(env, "HUBSPOT_TIMEOUT_MS", 30000)

        # Chat
        self.SLACK_BOT_TOKEN: str = env.get("SLACK_BOT_TOKEN", "")
        self.SLACK_SIGNING_SECRET: str = env.get("SLACK_SIGNING_SECRET", "")
        self.SLACK_CHANNEL_ID: str = env.get("SLACK_CHANNEL_ID", "")
        self.SLACK_API_BASE: str = env.get("SLACK_API_BASE", "https://slack.com/api")

        # Storage
        self.DB_PATH: Path = Path(env.get("FOLLOWUPS_DB_PATH", "data/follow-ups.db"))

        # Pipeline
        self.STALENESS_THRESHOLDS: Dict[str, int] = self._thresholds(env.get("STALENESS_THRESHOLDS", ""))
        self.PIPELINE_ON_ITEM_ERROR: str = env.get("PIPELINE_ON_ITEM_ERROR", "abort").strip().lower()
        self.PIPELINE_CONCURRENCY: int = self._int(env, "PIPELINE_CONCURRENCY", 1)
        self.RECENT_EMAIL_LIMIT: int = self._int(env, "RECENT_EMAIL_LIMIT", 3)

        # Observability
        self.LOG_LEVEL: str = env.get("LOG_LEVEL", "INFO")
        self.LOG_STRUCTURED: bool = _as_bool(env.get("LOG_STRUCTURED"), True)
        self.OTEL_EXPORTER_OTLP_ENDPOINT: Optional[str] = env.get("OTEL_EXPORTER_OTLP_ENDPOINT") or None

        # Server
        self.API_HOST: str = env.get("API_HOST", "0.0.0.0")
        self.API_PORT: int = self._int(env, "API_PORT", 8000)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()

    def _int(self, env: Mapping[str, str], name: str, default: int) -> int:
        raw = env.get(name)
        if raw is None or raw == "":
            return default
        try:
            return int(raw)
        except ValueError:
            self._issues.append(f"{name}: must be an integer (got {raw!r})")
            return default

    def _thresholds(self, raw: str) -> Dict[str, int]:
        if not raw.strip():
            return dict(DEFAULT_STALENESS_THRESHOLDS)
        try:
            parsed = json.loads(raw)
            table = {str(k).lower(): int(v) for k, v in parsed.items()}
        except (ValueError, TypeError, AttributeError):
            self._issues.append("STALENESS_THRESHOLDS: must be a JSON object of stage -> days")
            return dict(DEFAULT_STALENESS_THRESHOLDS)
        table.setdefault("default", DEFAULT_STALENESS_THRESHOLDS["default"])
        return table

    def validate(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = list(self._issues)

        if not self.OPENAI_API_KEY:
            issues.append("OPENAI_API_KEY: OPENAI_API_KEY is required")
        if not self.HUBSPOT_ACCESS_TOKEN:
            issues.append("HUBSPOT_ACCESS_TOKEN: HUBSPOT_ACCESS_TOKEN is required")
        if not self.SLACK_BOT_TOKEN.startswith("xoxb-"):
            issues.append("SLACK_BOT_TOKEN: SLACK_BOT_TOKEN must start with xoxb-")
        if not self.SLACK_SIGNING_SECRET:
            issues.append("SLACK_SIGNING_SECRET: SLACK_SIGNING_SECRET is required")
        if not self.SLACK_CHANNEL_ID:
            issues.append("SLACK_CHANNEL_ID: SLACK_CHANNEL_ID is required")

        if self.PIPELINE_ON_ITEM_ERROR not in ON_ITEM_ERROR_MODES:
            issues.append(f"PIPELINE_ON_ITEM_ERROR: must be one of {', '.join(ON_ITEM_ERROR_MODES)}")
        if self.PIPELINE_CONCURRENCY < 1:
            issues.append("PIPELINE_CONCURRENCY: must be >= 1")
        if self.RECENT_EMAIL_LIMIT < 0:
            issues.append("RECENT_EMAIL_LIMIT: must be >= 0")

        return issues

    def require(self) -> "Settings":
        """Raise ConfigurationError listing every problem, or return self."""
        issues = self.validate()
        if issues:
            raise ConfigurationError(issues)
        return self
