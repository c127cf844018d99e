"""Application configuration layer.

Loads and validates the JSON config file, resolves credentials and builds the
template environment used to place output files.
"""

from .config import (
    AppConfig,
    ConfigError,
    Credentials,
    create_env,
    load_config,
    resolve_credentials,
    validate_activities,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "Credentials",
    "create_env",
    "load_config",
    "resolve_credentials",
    "validate_activities",
]
