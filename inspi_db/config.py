"""
Configuration management for the Inspi database toolkit.

Settings are read from the environment and an optional .env file.
Every setting has a sensible default so the optimizer and the index
catalog can be used without a running database.
"""

from functools import lru_cache
from typing import Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings."""

    # Application Configuration
    app_name: str = "InspiDB"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # Database Configuration
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "inspi"
    mongodb_max_pool_size: int = 50
    mongodb_min_pool_size: int = 10
    mongodb_server_selection_timeout_ms: int = 5000

    # Index maintenance
    create_indexes_on_startup: bool = True
    index_efficiency_threshold: float = 30.0
    index_size_warning_mb: int = 100

    # Pipeline optimizer
    match_merge_strategy: Literal["and", "overwrite"] = "and"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator('index_efficiency_threshold')
    @classmethod
    def validate_efficiency_threshold(cls, v):
        """Efficiency scores live in [0, 100]."""
        if not (0 <= v <= 100):
            raise ValueError("INDEX_EFFICIENCY_THRESHOLD must be between 0 and 100")
        return v

    @field_validator('index_size_warning_mb')
    @classmethod
    def validate_size_warning(cls, v):
        if v <= 0:
            raise ValueError("INDEX_SIZE_WARNING_MB must be positive")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def index_size_warning_bytes(self) -> int:
        """Aggregate index size above which a storage warning is raised."""
        return self.index_size_warning_mb * 1024 * 1024

    @property
    def log_config(self) -> dict:
        """Get logging configuration for logging.config.dictConfig."""
        handlers = {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout"
            }
        }
        if self.log_file:
            handlers["file"] = {
                "formatter": "json" if self.is_production else "default",
                "class": "logging.FileHandler",
                "filename": self.log_file,
                "mode": "a"
            }

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S"
                },
                "json": {
                    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                    "format": "%(asctime)s %(name)s %(levelname)s %(message)s"
                }
            },
            "handlers": handlers,
            "root": {
                "level": self.log_level,
                "handlers": list(handlers)
            }
        }

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Global settings instance
settings = get_settings()
