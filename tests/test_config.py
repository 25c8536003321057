"""Settings layering and validation."""

import json

import pytest

from slack_gate.config import DEFAULT_TIMEOUT_S, load_settings
from slack_gate.errors import ConfigurationError

ENV = {"SLACK_APP_TOKEN": "xapp-1", "SLACK_BOT_TOKEN": "xoxb-1", "SLACK_CHANNEL_ID": "C123"}


@pytest.fixture
def no_file(tmp_path):
    return tmp_path / "missing.json"


def test_defaults(no_file):
    settings = load_settings(environ=ENV, config_file=no_file)
    assert settings.channel_id == "C123"
    assert settings.timeout_seconds == DEFAULT_TIMEOUT_S
    assert settings.api_base_url == "https://slack.com/api"
    assert settings.log_level == "INFO"


@pytest.mark.parametrize("missing", sorted(ENV))
def test_missing_variable(no_file, missing):
    env = {k: v for k, v in ENV.items() if k != missing}
    with pytest.raises(ConfigurationError, match=missing):
        load_settings(environ=env, config_file=no_file)


@pytest.mark.parametrize("var,value", [
    ("SLACK_APP_TOKEN", "xoxb-wrong"),
    ("SLACK_BOT_TOKEN", "xapp-wrong"),
    ("SLACK_GATE_TIMEOUT", "0"),
    ("SLACK_GATE_TIMEOUT", "soon"),
    ("SLACK_GATE_LOG_LEVEL", "LOUD"),
])
def test_invalid_values(no_file, var, value):
    with pytest.raises(ConfigurationError):
        load_settings(environ={**ENV, var: value}, config_file=no_file)


def test_layering(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"channel_id": "CFILE", "timeout_seconds": 60, "log_level": "debug"}))
    env = {k: v for k, v in ENV.items() if k != "SLACK_CHANNEL_ID"}
    settings = load_settings(environ=env, config_file=path)
    assert settings.channel_id == "CFILE"
    assert settings.timeout_seconds == 60
    assert settings.log_level == "DEBUG"

    settings = load_settings(environ={**env, "SLACK_GATE_TIMEOUT": "90"}, config_file=path,
                             overrides={"channel_id": "COPT", "timeout_seconds": None})
    assert settings.channel_id == "COPT"
    assert settings.timeout_seconds == 90


def test_config_path_from_env(tmp_path):
    path = tmp_path / "alt.json"
    path.write_text(json.dumps({"channel_id": "CALT"}))
    env = {k: v for k, v in ENV.items() if k != "SLACK_CHANNEL_ID"}
    assert load_settings(environ={**env, "SLACK_GATE_CONFIG": str(path)}).channel_id == "CALT"


def test_malformed_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{oops")
    with pytest.raises(ConfigurationError):
        load_settings(environ=ENV, config_file=path)
