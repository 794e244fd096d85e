"""Tests for envelope configuration."""

import logging
import os

import pytest

from envelopecore.config import DEFAULT_PAYLOAD_TYPE, EnvelopeConfig
from envelopecore.errors import ConfigError


def test_default_config():
    """Test default configuration."""
    config = EnvelopeConfig()
    assert config.payload_type == DEFAULT_PAYLOAD_TYPE
    assert config.log_level == "WARNING"
    assert config.log_level_value == logging.WARNING
    assert config.key_paths == []
    assert config.algorithm == "ed25519"


def test_log_level_normalized():
    """Test log level names are upper-cased."""
    assert EnvelopeConfig(log_level="debug").log_level == "DEBUG"


def test_invalid_log_level():
    """Test unknown log levels are rejected."""
    with pytest.raises(ConfigError):
        EnvelopeConfig(log_level="chatty")


def test_invalid_algorithm():
    """Test unknown algorithms are rejected."""
    with pytest.raises(ConfigError):
        EnvelopeConfig(algorithm="rsa")


def test_single_key_path_string():
    """Test a bare string key path becomes a list."""
    assert EnvelopeConfig(key_paths="key.pem").key_paths == ["key.pem"]


def test_config_from_env(monkeypatch):
    """Test loading configuration from environment variables."""
    monkeypatch.setenv("ENVELOPE_PAYLOAD_TYPE", "application/vnd.test")
    monkeypatch.setenv("ENVELOPE_LOG_LEVEL", "info")
    monkeypatch.setenv("ENVELOPE_KEY_PATHS", os.pathsep.join(["a.pem", "b.pem"]))
    monkeypatch.setenv("ENVELOPE_ALGORITHM", "ECDSA")

    config = EnvelopeConfig.from_env()

    assert config.payload_type == "application/vnd.test"
    assert config.log_level == "INFO"
    assert config.key_paths == ["a.pem", "b.pem"]
    assert config.algorithm == "ecdsa"


def test_config_from_env_defaults(monkeypatch):
    """Test defaults when no variables are set."""
    for name in ("ENVELOPE_PAYLOAD_TYPE", "ENVELOPE_LOG_LEVEL", "ENVELOPE_KEY_PATHS", "ENVELOPE_ALGORITHM"):
        monkeypatch.delenv(name, raising=False)

    assert EnvelopeConfig.from_env().to_dict() == EnvelopeConfig().to_dict()


def test_config_from_dict():
    """Test loading configuration from dictionary."""
    config = EnvelopeConfig.from_dict({
        "payload_type": "text/plain",
        "key_paths": ["k.pem"],
        "algorithm": "ecdsa",
    })
    assert config.payload_type == "text/plain"
    assert config.key_paths == ["k.pem"]
    assert config.algorithm == "ecdsa"
    assert config.log_level == "WARNING"


def test_config_roundtrip_dict():
    """Test to_dict feeds back into from_dict."""
    config = EnvelopeConfig(payload_type="t", log_level="ERROR", key_paths=["x"], algorithm="ecdsa")
    assert EnvelopeConfig.from_dict(config.to_dict()) == config


def test_config_from_yaml(tmp_path):
    """Test loading configuration from YAML file."""
    path = tmp_path / "envelope.yaml"
    path.write_text("payload_type: text/plain\nlog_level: debug\nkey_paths:\n  - one.pem\n")

    config = EnvelopeConfig.from_yaml(path)
    assert config.payload_type == "text/plain"
    assert config.log_level == "DEBUG"
    assert config.key_paths == ["one.pem"]


def test_config_from_empty_yaml(tmp_path):
    """Test an empty YAML file gives defaults."""
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert EnvelopeConfig.from_yaml(path) == EnvelopeConfig()


def test_config_from_yaml_not_mapping(tmp_path):
    """Test a YAML list is rejected."""
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        EnvelopeConfig.from_yaml(path)


def test_config_from_invalid_yaml(tmp_path):
    """Test a YAML syntax error is reported as ConfigError."""
    path = tmp_path / "bad.yaml"
    path.write_text("key: [unclosed\n")
    with pytest.raises(ConfigError):
        EnvelopeConfig.from_yaml(path)


def test_config_from_yaml_scalar_key_path(tmp_path):
    """Test a single key path written as a YAML scalar stays one path."""
    path = tmp_path / "envelope.yaml"
    path.write_text("key_paths: release.pem\n")

    config = EnvelopeConfig.from_yaml(path)
    assert config.key_paths == ["release.pem"]


def test_config_from_dict_scalar_key_path():
    """Test a scalar key path in a dictionary is wrapped in a list."""
    assert EnvelopeConfig.from_dict({"key_paths": "release.pem"}).key_paths == ["release.pem"]
