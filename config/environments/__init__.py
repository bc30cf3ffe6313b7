"""
Environment-specific configurations

``APP_ENV`` selects the configuration class; secrets are applied on top by
``AppConfig.load()``. Unknown environments get the base defaults.
"""

import os
from typing import Dict, Optional, Type

from config.app_config import AppConfig
from .development import DevelopmentConfig
from .production import ProductionConfig


ENVIRONMENT_CONFIGS: Dict[str, Type[AppConfig]] = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
}


def get_environment_config(environment: Optional[str] = None) -> AppConfig:
    """
    Load the configuration for an environment

    Args:
        environment: Environment name, ``APP_ENV`` (default "development") when omitted

    Returns:
        AppConfig: Configuration with environment overrides and secrets applied
    """
    env = (environment or os.getenv("APP_ENV", "development")).lower()
    config_class = ENVIRONMENT_CONFIGS.get(env, AppConfig)
    return config_class.load()
