"""
Settings — layered from an optional JSON file, then environment variables,
then explicit overrides (CLI options).
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from slack_gate.errors import ConfigurationError
from slack_gate.transport.http import DEFAULT_BASE_URL

CONFIG_FILE = Path.home() / ".slack-gate" / "config.json"
DEFAULT_TIMEOUT_S = 30 * 60.0

ENV_VARS = {
    "app_token": "SLACK_APP_TOKEN",
    "bot_token": "SLACK_BOT_TOKEN",
    "channel_id": "SLACK_CHANNEL_ID",
    "timeout_seconds": "SLACK_GATE_TIMEOUT",
    "api_base_url": "SLACK_API_BASE_URL",
    "log_level": "SLACK_GATE_LOG_LEVEL",
}
REQUIRED = ("app_token", "bot_token", "channel_id")
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseModel):
    app_token: str
    bot_token: str
    channel_id: str = Field(min_length=1)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_S, gt=0)
    api_base_url: str = DEFAULT_BASE_URL
    log_level: str = "INFO"

    @field_validator("app_token")
    @classmethod
    def _app_token_prefix(cls, v: str) -> str:
        if not v.startswith("xapp-"):
            raise ValueError("SLACK_APP_TOKEN should start with 'xapp-'")
        return v

    @field_validator("bot_token")
    @classmethod
    def _bot_token_prefix(cls, v: str) -> str:
        if not v.startswith("xoxb-"):
            raise ValueError("SLACK_BOT_TOKEN should start with 'xoxb-'")
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {sorted(LOG_LEVELS)}")
        return level


def _load_config_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return {k: v for k, v in data.items() if k in ENV_VARS}


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    config_file: Optional[Path] = None,
) -> Settings:
    """Build Settings. Raises ConfigurationError for missing or malformed values."""
    env = os.environ if environ is None else environ
    path = config_file or Path(env.get("SLACK_GATE_CONFIG") or CONFIG_FILE)

    values = _load_config_file(path)
    for field, var in ENV_VARS.items():
        if env.get(var):
            values[field] = env[var]
    for field, value in (overrides or {}).items():
        if value is not None:
            values[field] = value

    for field in REQUIRED:
        if not values.get(field):
            raise ConfigurationError(f"Missing environment variable: {ENV_VARS[field]}")

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        err = e.errors(include_url=False)[0]
        where = ".".join(str(p) for p in err["loc"])
        raise ConfigurationError(f"Invalid configuration ({where}): {err['msg']}")
