"""
Configuration for envctl and applications embedding envelopecore.

Supports:
- Environment variable configuration
- YAML file configuration
- Runtime overrides
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from envelopecore.errors import ConfigError
from envelopecore.providers import ALGORITHMS

DEFAULT_PAYLOAD_TYPE = "application/vnd.in-toto+json"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EnvelopeConfig:
    """
    Settings shared by the CLI commands.

    Defaults:
    - payload_type: in-toto statement media type
    - log_level: WARNING
    - key_paths: none (keys must be given explicitly)
    - algorithm: ed25519 (used by keygen)
    """

    payload_type: str = DEFAULT_PAYLOAD_TYPE
    log_level: str = "WARNING"
    key_paths: list[str] = field(default_factory=list)
    algorithm: str = "ed25519"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.log_level = str(self.log_level).upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level}")

        if self.algorithm not in ALGORITHMS:
            raise ConfigError(f"algorithm must be one of {', '.join(sorted(ALGORITHMS))}, got {self.algorithm}")

        if not isinstance(self.payload_type, str):
            raise ConfigError("payload_type must be a string")

        if isinstance(self.key_paths, str):
            self.key_paths = [self.key_paths]
        else:
            self.key_paths = [str(p) for p in self.key_paths]

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_env(cls) -> "EnvelopeConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            ENVELOPE_PAYLOAD_TYPE: Default payload type
            ENVELOPE_LOG_LEVEL: Log level name
            ENVELOPE_KEY_PATHS: Key files, separated by os.pathsep
            ENVELOPE_ALGORITHM: Key algorithm for keygen (ed25519/ecdsa)
        """
        key_paths_str = os.getenv("ENVELOPE_KEY_PATHS", "")
        key_paths = [p for p in key_paths_str.split(os.pathsep) if p]

        return cls(
            payload_type=os.getenv("ENVELOPE_PAYLOAD_TYPE", DEFAULT_PAYLOAD_TYPE),
            log_level=os.getenv("ENVELOPE_LOG_LEVEL", "WARNING"),
            key_paths=key_paths,
            algorithm=os.getenv("ENVELOPE_ALGORITHM", "ed25519").lower(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnvelopeConfig":
        """Create configuration from dictionary (e.g., YAML)."""
        return cls(
            payload_type=data.get("payload_type", DEFAULT_PAYLOAD_TYPE),
            log_level=data.get("log_level", "WARNING"),
            key_paths=data.get("key_paths") or [],
            algorithm=str(data.get("algorithm", "ed25519")).lower(),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "EnvelopeConfig":
        """Load configuration from a YAML file."""
        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "payload_type": self.payload_type,
            "log_level": self.log_level,
            "key_paths": list(self.key_paths),
            "algorithm": self.algorithm,
        }
