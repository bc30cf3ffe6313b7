"""
Production environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig


@dataclass
class ProductionConfig(AppConfig):
    """Production environment configuration"""
    
    def __post_init__(self):
        
        # Production-specific overrides
        self.environment = "production"
        self.debug = False
        
        # Production logging - less verbose, focus on errors
        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-app.log"
        
        # Spread retries of concurrent sessions against the hosted endpoint
        self.retry.jitter = 0.5
        
        # Keep blacklist state across restarts
        self.availability.persist_state = True
        self.availability.state_file = "state/prod-model-availability.json"
        
        # Longer generations are expected in production
        self.llm.timeout = 180.0


def get_production_config() -> ProductionConfig:
    """Get production-specific configuration"""
    return ProductionConfig.load()
