"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .sensor import SensorServiceConfig, get_sensor_service_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "SensorServiceConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_reconciliation_config",
    "get_sensor_service_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
