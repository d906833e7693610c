"""Configuration package for the requirements generator."""

from .models import (
    AppConfig,
    ProjectConfig,
    ModelConfig,
    RetryConfig,
    ProcessingConfig,
    LoggingConfig,
    RequirementsGeneratorError,
    ConfigError,
    safe_load_dataclass,
)

__all__ = [
    'AppConfig',
    'ProjectConfig',
    'ModelConfig',
    'RetryConfig',
    'ProcessingConfig',
    'LoggingConfig',
    'RequirementsGeneratorError',
    'ConfigError',
    'safe_load_dataclass',
]
