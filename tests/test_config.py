"""
Tests for configuration system
"""

import pytest
import os
import tempfile
from pathlib import Path
from config.app_config import (
    AppConfig, APIConfig, LLMConfig, RetryConfig, AvailabilityConfig,
    DEFAULT_BASE_URL, get_config, reload_config
)


class TestAPIConfig:
    """Test API configuration"""

    def test_from_secrets_fallback_to_env(self, monkeypatch):
        """Test fallback to environment variables when secrets unavailable"""
        monkeypatch.setenv("TEXT_API_BASE_URL", "https://example.test/openai")
        monkeypatch.setenv("TEXT_API_KEY", "test-key")

        config = APIConfig.from_secrets()

        assert config.base_url == "https://example.test/openai"
        assert config.api_key == "test-key"

    def test_defaults_without_environment(self, monkeypatch):
        """Test the public endpoint is used when nothing is configured"""
        monkeypatch.delenv("TEXT_API_BASE_URL", raising=False)
        monkeypatch.delenv("TEXT_API_KEY", raising=False)

        config = APIConfig.from_secrets()

        assert config.base_url == DEFAULT_BASE_URL
        assert config.api_key == ""


class TestLLMConfig:
    """Test LLM configuration"""

    def test_default_values(self):
        """Test default configuration values"""
        config = LLMConfig()

        assert config.default_model == "openai-large"
        assert config.temperature == 0.7
        assert config.max_tokens == 8192
        assert config.max_model_switches == 3

    def test_to_dict(self):
        """Test conversion to dictionary"""
        config = LLMConfig()

        expected = {
            "model": "openai-large",
            "temperature": 0.7,
            "max_tokens": 8192,
            "timeout": 120.0
        }
        assert config.to_dict() == expected


class TestRetryConfig:
    """Test retry defaults"""

    def test_default_values(self):
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.backoff_factor == 1.5
        assert config.jitter == 0.0


class TestAvailabilityConfig:
    """Test availability registry configuration"""

    def test_default_values(self):
        config = AvailabilityConfig()

        assert config.blacklist_threshold == 3
        assert config.cooldown_seconds == 300.0
        assert config.fallback_order[0] == "openai-large"
        assert config.persist_state is False

    def test_preferences_reference_ranked_models(self):
        """Test every preferred substitute is a ranked model"""
        config = AvailabilityConfig()

        for model, alternatives in config.preferences.items():
            assert model in config.fallback_order
            assert model not in alternatives
            assert set(alternatives) <= set(config.fallback_order)

    def test_instances_do_not_share_lists(self):
        first = AvailabilityConfig()
        second = AvailabilityConfig()
        first.fallback_order.append("extra")

        assert "extra" not in second.fallback_order


class TestAppConfig:
    """Test main application configuration"""

    def test_default_initialization(self):
        """Test default configuration initialization"""
        config = AppConfig()

        assert isinstance(config.api, APIConfig)
        assert isinstance(config.llm, LLMConfig)
        assert isinstance(config.retry, RetryConfig)
        assert isinstance(config.availability, AvailabilityConfig)

    def test_environment_detection(self, monkeypatch):
        """Test environment detection"""
        monkeypatch.setenv("APP_ENV", "production")
        config = AppConfig()
        assert config.environment == "production"

        monkeypatch.setenv("APP_ENV", "development")
        config = AppConfig()
        assert config.environment == "development"

    def test_debug_flag(self, monkeypatch):
        """Test debug flag configuration"""
        monkeypatch.setenv("DEBUG", "true")
        config = AppConfig()
        assert config.debug is True

        monkeypatch.setenv("DEBUG", "false")
        config = AppConfig()
        assert config.debug is False

    def test_load_applies_secrets(self, monkeypatch):
        """Test load() fills the API section from the environment"""
        monkeypatch.setenv("TEXT_API_KEY", "loaded-key")

        assert AppConfig.load().api.api_key == "loaded-key"

    def test_validate_defaults(self):
        """Test the default configuration is valid"""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = AppConfig()
            config.logging.log_file = os.path.join(temp_dir, "logs", "test.log")

            assert config.validate() == []

    def test_validate_retry_values(self):
        """Test validation catches impossible retry settings"""
        config = AppConfig()
        config.logging.enable_file_logging = False
        config.retry.max_attempts = -1
        config.retry.backoff_factor = 0.5

        errors = config.validate()

        assert "retry.max_attempts must be >= 0" in errors
        assert "retry.backoff_factor must be >= 1" in errors

    def test_validate_unranked_default_model(self):
        """Test validation catches a default model outside the fallback order"""
        config = AppConfig()
        config.logging.enable_file_logging = False
        config.llm.default_model = "unknown-model"

        errors = config.validate()

        assert "Default model 'unknown-model' is not in the fallback order" in errors

    def test_validate_creates_directories(self):
        """Test validation creates necessary directories"""
        with tempfile.TemporaryDirectory() as temp_dir:
            config = AppConfig()
            config.availability.persist_state = True
            config.availability.state_file = os.path.join(temp_dir, "state", "models.json")
            config.logging.log_file = os.path.join(temp_dir, "logs", "test.log")
            config.logging.enable_file_logging = True

            config.validate()

            assert Path(temp_dir, "state").exists()
            assert Path(temp_dir, "logs").exists()


class TestConfigSingleton:
    """Test configuration singleton behavior"""

    def test_get_config_singleton(self):
        """Test that get_config returns the same instance"""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2

    def test_reload_config(self):
        """Test configuration reloading"""
        config1 = get_config()
        config2 = reload_config()

        # Should be different instances after reload
        assert config1 is not config2
        assert isinstance(config2, AppConfig)

    def test_reload_picks_up_environment(self, monkeypatch):
        monkeypatch.setenv("TEXT_API_KEY", "reloaded-key")

        assert reload_config().api.api_key == "reloaded-key"


class TestGlobalConfigEnvironments:
    """Test that the global configuration carries the environment overrides"""

    @pytest.fixture(autouse=True)
    def isolated_global_config(self, tmp_path, monkeypatch):
        # validate() creates log and state directories relative to the cwd
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("config.app_config._config", None)

    def test_production_overrides(self, monkeypatch):
        """Test production settings reach get_config()"""
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("TEXT_API_KEY", "prod-key")

        config = get_config()

        assert config.environment == "production"
        assert config.debug is False
        assert config.logging.level == "INFO"
        assert config.retry.jitter == 0.5
        assert config.llm.timeout == 180.0
        assert config.availability.persist_state is True
        assert config.availability.state_file == "state/prod-model-availability.json"
        assert config.api.api_key == "prod-key"

    def test_development_overrides(self, monkeypatch):
        """Test development settings reach get_config()"""
        monkeypatch.setenv("APP_ENV", "development")

        config = reload_config()

        assert config.debug is True
        assert config.logging.level == "DEBUG"
        assert config.retry.max_attempts == 2
        assert config.availability.cooldown_seconds == 60.0

    def test_unknown_environment_uses_defaults(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "staging")

        config = get_config()

        assert type(config) is AppConfig
        assert config.environment == "staging"
        assert config.retry.max_attempts == 3
        assert config.availability.cooldown_seconds == 300.0


if __name__ == "__main__":
    pytest.main([__file__])
