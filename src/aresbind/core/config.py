r"""Configuration dataclass and defaults for the resilient client.

This module provides configuration constants and an immutable
dataclass-based configuration object that sizes the connection pool and
parameterizes the timeout and retry policies.
"""

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
]

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING, Any

from aresbind.core.validation import (
    validate_pool_params,
    validate_retry_params,
    validate_timeout,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from aresbind.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo


# Connection pool sizing
DEFAULT_MAX_TOTAL_CONNECTIONS = 100
DEFAULT_MAX_PER_ROUTE = 10

# Idle connections are evicted after this many seconds
DEFAULT_MAX_IDLE_TIME = 10.0
# Period of the background eviction sweep
DEFAULT_EVICTION_INTERVAL = 5.0

# Timeouts in seconds, applied to every attempt
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_CONNECTION_ACQUIRE_TIMEOUT = 3.0
DEFAULT_RESPONSE_TIMEOUT = 5.0

# Total attempts = max_retries + 1 (initial attempt)
DEFAULT_MAX_RETRIES = 1
# Fixed delay between two attempts, not exponential
DEFAULT_RETRY_BACKOFF_INTERVAL = 1.0


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for the connection pool, timeouts and retries.

    The configuration is immutable: use ``merge`` to derive a modified
    copy.

    Args:
        max_total_connections: Maximum number of live connections across all
            routes. Must be > 0.
        max_per_route: Maximum number of live connections to a single
            (scheme, host, port) route. Must be > 0.
        max_idle_time: Seconds an idle connection is kept before eviction.
            Must be > 0.
        eviction_interval: Seconds between two idle eviction sweeps.
            Must be > 0.
        connect_timeout: Seconds allowed to establish a transport connection.
        connection_acquire_timeout: Seconds allowed to obtain a pooled
            connection when the pool is saturated.
        response_timeout: Seconds allowed between sending the request and
            receiving the full response.
        max_retries: Maximum number of retry attempts. Must be >= 0.
        retry_backoff_interval: Fixed delay in seconds between two attempts.
            Must be >= 0.
        on_request: Optional callback called before each request attempt.
        on_retry: Optional callback called before each retry (before the
            backoff delay).
        on_success: Optional callback called when a request completes.
        on_failure: Optional callback called when a request fails terminally.

    Example:
        ```pycon
        >>> from aresbind.core.config import ClientConfig
        >>> config = ClientConfig()
        >>> config.max_retries
        1
        >>> config.merge(max_retries=3).max_retries
        3
        >>> config.max_retries
        1

        ```
    """

    max_total_connections: int = DEFAULT_MAX_TOTAL_CONNECTIONS
    max_per_route: int = DEFAULT_MAX_PER_ROUTE
    max_idle_time: float = DEFAULT_MAX_IDLE_TIME
    eviction_interval: float = DEFAULT_EVICTION_INTERVAL
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    connection_acquire_timeout: float = DEFAULT_CONNECTION_ACQUIRE_TIMEOUT
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_backoff_interval: float = DEFAULT_RETRY_BACKOFF_INTERVAL
    on_request: Callable[[RequestInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None
    on_success: Callable[[ResponseInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        validate_pool_params(
            max_total_connections=self.max_total_connections,
            max_per_route=self.max_per_route,
            max_idle_time=self.max_idle_time,
        )
        validate_timeout("eviction_interval", self.eviction_interval)
        validate_timeout("connect_timeout", self.connect_timeout)
        validate_timeout("connection_acquire_timeout", self.connection_acquire_timeout)
        validate_timeout("response_timeout", self.response_timeout)
        validate_retry_params(
            max_retries=self.max_retries,
            retry_backoff_interval=self.retry_backoff_interval,
        )

    def merge(self, **overrides: Any) -> ClientConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new ClientConfig instance with overrides applied.

        Example:
            ```pycon
            >>> from aresbind.core.config import ClientConfig
            >>> config = ClientConfig(max_per_route=5)
            >>> config.merge(max_per_route=None, response_timeout=2.0).max_per_route
            5

            ```
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert the configuration to a dictionary.

        Returns:
            Dictionary with one entry per configuration field.
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}
