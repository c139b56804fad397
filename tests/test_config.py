"""
Tests for sentinel configuration.
"""

import pytest

from irbsentinel.core import (
    ConfigurationError,
    SentinelConfig,
    get_sentinel_config,
    reset_sentinel_config,
)
from irbsentinel.core.config import DEFAULT_REVIEWERS
from irbsentinel.models.model_caller import DEFAULT_OPENROUTER_URL

ENV_KEYS = [
    "IRB_CONFIG_FILE",
    "IRB_REVIEWERS",
    "IRB_REQUIRED_COUNT",
    "IRB_TIMEOUT_SECONDS",
    "IRB_MAX_TOKENS",
    "IRB_TEMPERATURE",
    "IRB_VALIDATE_MODELS",
    "IRB_ARTIFACT_DIR",
    "IRB_COMMIT_ENABLED",
    "IRB_CONCERN_PREFIX",
    "OPENROUTER_BASE_URL",
    "OPENROUTER_API_KEY",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestSentinelConfig:
    """Tests for SentinelConfig."""

    def test_defaults(self, clean_env):
        """Test default configuration values."""
        config = SentinelConfig.from_env()
        assert config.reviewers == DEFAULT_REVIEWERS
        assert config.required_count == 3
        assert config.max_tokens == 900
        assert config.temperature == 0.2
        assert config.required_reviewers == DEFAULT_REVIEWERS[:3]
        assert config.advisory_reviewers == DEFAULT_REVIEWERS[3:]
        assert config.api_key == ""
        assert config.base_url == DEFAULT_OPENROUTER_URL

    def test_env_overrides(self, clean_env):
        """Test that environment variables override defaults."""
        clean_env.setenv("IRB_REVIEWERS", "a/one, b/two")
        clean_env.setenv("IRB_REQUIRED_COUNT", "2")
        clean_env.setenv("IRB_VALIDATE_MODELS", "false")
        clean_env.setenv("OPENROUTER_API_KEY", "sk-test")
        config = SentinelConfig.from_env()
        assert config.reviewers == ["a/one", "b/two"]
        assert config.required_count == 2
        assert config.validate_models is False
        assert config.api_key == "sk-test"

    def test_yaml_then_env(self, clean_env, temp_dir):
        """Test that environment variables override the YAML file."""
        config_file = temp_dir / "irb.yaml"
        config_file.write_text(
            "reviewers:\n  - a/one\n  - b/two\n  - c/three\nrequired_count: 2\nmax_tokens: 400\n"
        )
        clean_env.setenv("IRB_MAX_TOKENS", "600")
        config = SentinelConfig.from_env(str(config_file))
        assert config.reviewers == ["a/one", "b/two", "c/three"]
        assert config.required_count == 2
        assert config.max_tokens == 600

    def test_invalid_number(self, clean_env):
        """Test that a non-numeric value is a configuration error."""
        clean_env.setenv("IRB_REQUIRED_COUNT", "three")
        with pytest.raises(ConfigurationError):
            SentinelConfig.from_env()

    def test_unreadable_yaml(self, clean_env, temp_dir):
        """Test that a missing config file is a configuration error."""
        with pytest.raises(ConfigurationError):
            SentinelConfig.from_yaml(str(temp_dir / "missing.yaml"))

    def test_yaml_must_be_mapping(self, temp_dir):
        """Test that a YAML list is rejected."""
        config_file = temp_dir / "irb.yaml"
        config_file.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            SentinelConfig.from_yaml(str(config_file))

    @pytest.mark.parametrize("overrides,key", [
        ({"reviewers": []}, "IRB_REVIEWERS"),
        ({"reviewers": ["a", "a", "b"]}, "IRB_REVIEWERS"),
        ({"required_count": 0}, "IRB_REQUIRED_COUNT"),
        ({"reviewers": ["a", "b"], "required_count": 3}, "IRB_REQUIRED_COUNT"),
        ({"timeout_seconds": 0}, "IRB_TIMEOUT_SECONDS"),
    ])
    def test_validate_rejects(self, overrides, key):
        """Test validation of invalid rosters and limits."""
        with pytest.raises(ConfigurationError) as exc_info:
            SentinelConfig(**overrides).validate()
        assert exc_info.value.key == key

    def test_missing_api_key(self):
        """Test that the API key is only required when asked for."""
        config = SentinelConfig()
        config.validate()
        with pytest.raises(ConfigurationError) as exc_info:
            config.validate(require_api_key=True)
        assert "OPENROUTER_API_KEY" in str(exc_info.value)

    def test_to_dict_hides_key(self):
        """Test that the API key never appears in to_dict."""
        data = SentinelConfig(api_key="sk-secret").to_dict()
        assert "api_key" not in data
        assert data["api_key_set"] is True
        assert "sk-secret" not in str(data)

    def test_global_config_cached(self, clean_env):
        """Test global config caching and reset."""
        first = get_sentinel_config()
        assert get_sentinel_config() is first
        reset_sentinel_config()
        assert get_sentinel_config() is not first
