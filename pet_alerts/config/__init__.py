"""Configuration management module for the pet alert notifier."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    AppConfig,
    DispatchConfig,
    EmailConfig,
    EmptyFacetPolicy,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MatchingConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "MatchingConfig",
    "DispatchConfig",
    "EmailConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "EmptyFacetPolicy",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
