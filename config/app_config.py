"""
Unified Configuration System for the office collaboration backend

This module provides a centralized configuration system that consolidates the settings of the
text-generation client, the retry policy and the model availability registry, supports
environment-based overrides, and provides type-safe configuration access.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import streamlit as st
import os
from pathlib import Path


DEFAULT_BASE_URL = "https://text.pollinations.ai/openai"


@dataclass
class APIConfig:
    """Text-generation endpoint settings"""
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""

    @classmethod
    def from_secrets(cls) -> 'APIConfig':
        """Load API config from Streamlit secrets"""
        # In test environment, prefer environment variables
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            return cls._from_env()

        try:
            return cls(
                base_url=st.secrets.get("TEXT_API_BASE_URL", DEFAULT_BASE_URL),
                api_key=st.secrets.get("TEXT_API_KEY", "")
            )
        except Exception:
            # Fallback to environment variables if secrets not available
            return cls._from_env()

    @classmethod
    def _from_env(cls) -> 'APIConfig':
        return cls(
            base_url=os.getenv("TEXT_API_BASE_URL", DEFAULT_BASE_URL),
            api_key=os.getenv("TEXT_API_KEY", "")
        )


@dataclass
class LLMConfig:
    """Language model configuration"""
    default_model: str = "openai-large"
    temperature: float = 0.7
    max_tokens: int = 8192
    timeout: float = 120.0
    max_model_switches: int = 3

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for LangChain compatibility"""
        return {
            "model": self.default_model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout
        }


@dataclass
class RetryConfig:
    """Retry policy defaults for a single model invocation"""
    max_attempts: int = 3       # retries after the initial attempt
    base_delay: float = 1.0     # seconds before the first retry
    backoff_factor: float = 1.5
    jitter: float = 0.0         # extra random delay, seconds


@dataclass
class AvailabilityConfig:
    """Model availability registry configuration"""
    blacklist_threshold: int = 3
    cooldown_seconds: float = 300.0  # 5 minutes

    # Search order used when the requested model is blacklisted
    fallback_order: List[str] = field(default_factory=lambda: [
        "openai-large",
        "openai-reasoning",
        "gemini",
        "gemini-thinking",
        "claude-hybridspace",
        "searchgpt"
    ])

    # Preferred substitutes per model, tried before the global order
    preferences: Dict[str, List[str]] = field(default_factory=lambda: {
        "openai-large": ["openai-reasoning", "claude-hybridspace", "gemini"],
        "openai-reasoning": ["openai-large", "gemini-thinking", "claude-hybridspace"],
        "gemini": ["gemini-thinking", "openai-large", "claude-hybridspace"],
        "gemini-thinking": ["gemini", "openai-reasoning", "claude-hybridspace"],
        "claude-hybridspace": ["openai-large", "gemini", "openai-reasoning"],
        "searchgpt": ["openai-reasoning", "openai-large", "gemini"]
    })

    persist_state: bool = False
    state_file: str = "state/model_availability.json"
    state_max_age_seconds: float = 30 * 60


@dataclass
class LoggingConfig:
    """Logging and monitoring configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = True
    log_file: str = "logs/app.log"


@dataclass
class AppConfig:
    """Main application configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @classmethod
    def load(cls) -> 'AppConfig':
        """
        Build the configuration with secrets applied

        Environment overrides live in the ``config.environments`` subclasses,
        so ``DevelopmentConfig.load()`` returns a development configuration.
        """
        config = cls()

        # Load API configuration from secrets/environment
        config.api = APIConfig.from_secrets()

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.api.base_url:
            errors.append("Text-generation base URL is required")

        if self.retry.max_attempts < 0:
            errors.append("retry.max_attempts must be >= 0")
        if self.retry.base_delay < 0:
            errors.append("retry.base_delay must be >= 0")
        if self.retry.backoff_factor < 1:
            errors.append("retry.backoff_factor must be >= 1")

        if self.availability.blacklist_threshold < 1:
            errors.append("availability.blacklist_threshold must be >= 1")
        if self.availability.cooldown_seconds <= 0:
            errors.append("availability.cooldown_seconds must be > 0")
        if not self.availability.fallback_order:
            errors.append("availability.fallback_order must list at least one model")

        if self.llm.default_model not in self.availability.fallback_order:
            errors.append(f"Default model '{self.llm.default_model}' is not in the fallback order")

        # Check file paths exist
        if self.availability.persist_state:
            Path(self.availability.state_file).parent.mkdir(parents=True, exist_ok=True)

        if self.logging.enable_file_logging:
            log_dir = Path(self.logging.log_file).parent
            if not log_dir.exists():
                log_dir.mkdir(parents=True, exist_ok=True)

        return errors


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        # Imported here: the environment modules subclass AppConfig
        from config.environments import get_environment_config
        _config = get_environment_config()

        # Validate configuration
        errors = _config.validate()
        if errors:
            import warnings
            for error in errors:
                warnings.warn(f"Configuration error: {error}")

    return _config


def reload_config() -> AppConfig:
    """Reload configuration (useful for testing)"""
    global _config
    _config = None
    return get_config()
