r"""Configuration and validation shared by the execution engine."""

from __future__ import annotations

__all__ = [
    "DEFAULT_CONNECTION_ACQUIRE_TIMEOUT",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_EVICTION_INTERVAL",
    "DEFAULT_MAX_IDLE_TIME",
    "DEFAULT_MAX_PER_ROUTE",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MAX_TOTAL_CONNECTIONS",
    "DEFAULT_RESPONSE_TIMEOUT",
    "DEFAULT_RETRY_BACKOFF_INTERVAL",
    "ClientConfig",
    "validate_pool_params",
    "validate_retry_params",
    "validate_timeout",
]

from aresbind.core.config import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CONNECTION_ACQUIRE_TIMEOUT,
    DEFAULT_EVICTION_INTERVAL,
    DEFAULT_MAX_IDLE_TIME,
    DEFAULT_MAX_PER_ROUTE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_TOTAL_CONNECTIONS,
    DEFAULT_RESPONSE_TIMEOUT,
    DEFAULT_RETRY_BACKOFF_INTERVAL,
    ClientConfig,
)
from aresbind.core.validation import (
    validate_pool_params,
    validate_retry_params,
    validate_timeout,
)
