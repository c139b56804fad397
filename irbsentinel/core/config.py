"""
Configuration for IRB Sentinel.

Centralized configuration for a sentinel run:
- Reviewer roster and required quorum size
- Per-call timeout and token budget
- Artifact root and commit behaviour

Settings come from an optional YAML file and environment variables.
Environment variables take precedence over the file.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..models.model_caller import DEFAULT_OPENROUTER_URL
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REVIEWERS = [
    "openai/gpt-4o",
    "anthropic/claude-3.5-sonnet",
    "x-ai/grok-2",
    "google/gemini-pro-1.5",
]


def _parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    val = str(value).strip().lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def _parse_roster(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = str(value).split(",")
    return [item.strip() for item in items if item.strip()]


@dataclass
class SentinelConfig:
    """
    Configuration for the IRB sentinel.

    Attributes:
        reviewers: Ordered reviewer roster (OpenRouter model ids)
        required_count: Number of reviewers, taken from the head of the roster,
            whose verdicts decide convergence. The rest are advisory.
        timeout_seconds: Timeout applied to each reviewer call
        max_tokens: Requested completion budget per call
        temperature: Sampling temperature for reviewer calls
        validate_models: Filter the roster against the provider's model list
        artifact_dir: Root directory of the artifact store
        commit_enabled: Commit written artifacts when the root is a git repo
        concern_prefix_length: Prefix length used to group similar concerns
        base_url: OpenRouter API base URL
        api_key: OpenRouter API key
    """

    reviewers: List[str] = field(default_factory=lambda: list(DEFAULT_REVIEWERS))
    required_count: int = 3
    timeout_seconds: float = 60.0
    max_tokens: int = 900
    temperature: float = 0.2
    validate_models: bool = True
    artifact_dir: str = "meshcore"
    commit_enabled: bool = True
    concern_prefix_length: int = 60
    base_url: str = DEFAULT_OPENROUTER_URL
    api_key: str = ""

    @property
    def required_reviewers(self) -> List[str]:
        """Reviewers whose verdicts gate convergence."""
        return self.reviewers[:self.required_count]

    @property
    def advisory_reviewers(self) -> List[str]:
        return self.reviewers[self.required_count:]

    def validate(self, require_api_key: bool = False) -> None:
        """
        Check the configuration contract.

        Args:
            require_api_key: Also require OPENROUTER_API_KEY to be set

        Raises:
            ConfigurationError: If the configuration cannot support a run
        """
        if not self.reviewers:
            raise ConfigurationError("Reviewer roster is empty", key="IRB_REVIEWERS")
        if len(set(self.reviewers)) != len(self.reviewers):
            raise ConfigurationError("Reviewer roster contains duplicates", key="IRB_REVIEWERS")
        if self.required_count < 1:
            raise ConfigurationError(
                f"required_count must be >= 1, got {self.required_count}",
                key="IRB_REQUIRED_COUNT",
            )
        if self.required_count > len(self.reviewers):
            raise ConfigurationError(
                f"required_count={self.required_count} exceeds roster size {len(self.reviewers)}",
                key="IRB_REQUIRED_COUNT",
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be positive", key="IRB_TIMEOUT_SECONDS")
        if self.max_tokens < 1:
            raise ConfigurationError("max_tokens must be positive", key="IRB_MAX_TOKENS")
        if require_api_key and not self.api_key:
            raise ConfigurationError("Missing env: OPENROUTER_API_KEY", key="OPENROUTER_API_KEY")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SentinelConfig":
        """Build a config from a mapping (YAML file contents)."""
        config = cls()
        try:
            if "reviewers" in data:
                config.reviewers = _parse_roster(data["reviewers"])
            if "required_count" in data:
                config.required_count = int(data["required_count"])
            if "timeout_seconds" in data:
                config.timeout_seconds = float(data["timeout_seconds"])
            if "max_tokens" in data:
                config.max_tokens = int(data["max_tokens"])
            if "temperature" in data:
                config.temperature = float(data["temperature"])
            if "concern_prefix_length" in data:
                config.concern_prefix_length = int(data["concern_prefix_length"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e
        if "validate_models" in data:
            config.validate_models = _parse_bool(data["validate_models"], True)
        if "artifact_dir" in data:
            config.artifact_dir = str(data["artifact_dir"])
        if "commit_enabled" in data:
            config.commit_enabled = _parse_bool(data["commit_enabled"], True)
        if "base_url" in data:
            config.base_url = str(data["base_url"]).rstrip("/")
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "SentinelConfig":
        """Load configuration from a YAML file."""
        try:
            with open(yaml_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read config file {yaml_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {yaml_path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "SentinelConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            IRB_CONFIG_FILE: optional YAML file loaded first
            IRB_REVIEWERS: comma-separated roster
            IRB_REQUIRED_COUNT: int (default: 3)
            IRB_TIMEOUT_SECONDS: float (default: 60)
            IRB_MAX_TOKENS: int (default: 900)
            IRB_TEMPERATURE: float (default: 0.2)
            IRB_VALIDATE_MODELS: true | false (default: true)
            IRB_ARTIFACT_DIR: path (default: meshcore)
            IRB_COMMIT_ENABLED: true | false (default: true)
            IRB_CONCERN_PREFIX: int (default: 60)
            OPENROUTER_BASE_URL: url
            OPENROUTER_API_KEY: credential
        """
        config_file = config_file or os.environ.get("IRB_CONFIG_FILE")
        if config_file:
            config = cls.from_yaml(config_file)
        else:
            config = cls()

        env_map = {
            "IRB_REVIEWERS": "reviewers",
            "IRB_REQUIRED_COUNT": "required_count",
            "IRB_TIMEOUT_SECONDS": "timeout_seconds",
            "IRB_MAX_TOKENS": "max_tokens",
            "IRB_TEMPERATURE": "temperature",
            "IRB_VALIDATE_MODELS": "validate_models",
            "IRB_ARTIFACT_DIR": "artifact_dir",
            "IRB_COMMIT_ENABLED": "commit_enabled",
            "IRB_CONCERN_PREFIX": "concern_prefix_length",
            "OPENROUTER_BASE_URL": "base_url",
        }
        overrides = {
            key: os.environ[env_key]
            for env_key, key in env_map.items()
            if os.environ.get(env_key, "").strip()
        }
        if overrides:
            merged = cls.from_dict(overrides)
            for key in overrides:
                setattr(config, key, getattr(merged, key))

        config.api_key = os.environ.get("OPENROUTER_API_KEY", "")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization. The API key is never included."""
        return {
            "reviewers": list(self.reviewers),
            "required_count": self.required_count,
            "timeout_seconds": self.timeout_seconds,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "validate_models": self.validate_models,
            "artifact_dir": self.artifact_dir,
            "commit_enabled": self.commit_enabled,
            "concern_prefix_length": self.concern_prefix_length,
            "base_url": self.base_url,
            "api_key_set": bool(self.api_key),
        }

    @property
    def artifact_root(self) -> Path:
        return Path(self.artifact_dir)


# Global config instance
_config: Optional[SentinelConfig] = None


def get_sentinel_config(config_file: Optional[str] = None) -> SentinelConfig:
    """Get global sentinel config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = SentinelConfig.from_env(config_file)
        logger.info(
            f"[CONFIG] Loaded config: reviewers={len(_config.reviewers)} "
            f"required={_config.required_count}"
        )
    return _config


def reset_sentinel_config() -> None:
    """Reset global config (for testing)."""
    global _config
    _config = None
