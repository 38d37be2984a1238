"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_int_env, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .hosted_store import HostedStoreConfig, get_hosted_store_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    StoreBackend,
    get_database_config,
    get_storage_config,
    get_store_backend,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "HostedStoreConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "StoreBackend",
    "configure_logging",
    "get_database_config",
    "get_hosted_store_config",
    "get_reconciliation_config",
    "get_storage_config",
    "get_store_backend",
    "optional_int_env",
    "require_env_var",
    "require_env_vars",
]
