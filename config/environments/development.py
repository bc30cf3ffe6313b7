"""
Development environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Development environment configuration"""
    
    def __post_init__(self):
        
        # Development-specific overrides
        self.environment = "development"
        self.debug = True
        
        # More verbose logging in development
        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-app.log"
        
        # Fail fast while iterating on prompts
        self.retry.max_attempts = 2
        self.retry.base_delay = 0.5
        
        # Blacklisted models come back quickly so every model gets exercised
        self.availability.cooldown_seconds = 60.0
        self.availability.persist_state = False


def get_development_config() -> DevelopmentConfig:
    """Get development-specific configuration"""
    return DevelopmentConfig.load()
