r"""Parameter validation utilities for the client configuration.

This module provides validation functions for timeouts, retry and
connection pool parameters to ensure they meet the required
constraints before being used by the execution engine.
"""

from __future__ import annotations

__all__ = ["validate_pool_params", "validate_retry_params", "validate_timeout"]


def validate_timeout(name: str, timeout: float) -> None:
    """Validate a timeout parameter.

    Args:
        name: The parameter name, used in the error message.
        timeout: Maximum seconds to wait. Must be > 0.

    Raises:
        ValueError: If timeout is <= 0.

    Example:
        ```pycon
        >>> from aresbind.core.validation import validate_timeout
        >>> validate_timeout("connect_timeout", 5.0)
        >>> validate_timeout("connect_timeout", 0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: connect_timeout must be > 0, got 0

        ```
    """
    if timeout <= 0:
        msg = f"{name} must be > 0, got {timeout}"
        raise ValueError(msg)


def validate_retry_params(max_retries: int, retry_backoff_interval: float = 0.0) -> None:
    """Validate retry parameters.

    Args:
        max_retries: Maximum number of retry attempts for failed requests.
            Must be >= 0. A value of 0 means no retries (only the initial attempt).
        retry_backoff_interval: Fixed delay in seconds between two attempts.
            Must be >= 0.

    Raises:
        ValueError: If max_retries or retry_backoff_interval are negative.

    Example:
        ```pycon
        >>> from aresbind.core.validation import validate_retry_params
        >>> validate_retry_params(max_retries=3)
        >>> validate_retry_params(max_retries=1, retry_backoff_interval=1.0)

        ```
    """
    if max_retries < 0:
        msg = f"max_retries must be >= 0, got {max_retries}"
        raise ValueError(msg)
    if retry_backoff_interval < 0:
        msg = f"retry_backoff_interval must be >= 0, got {retry_backoff_interval}"
        raise ValueError(msg)


def validate_pool_params(
    max_total_connections: int,
    max_per_route: int,
    max_idle_time: float,
) -> None:
    """Validate connection pool parameters.

    Args:
        max_total_connections: Maximum number of live connections. Must be > 0.
        max_per_route: Maximum number of live connections for a single
            route. Must be > 0.
        max_idle_time: Seconds after which an idle connection is evicted.
            Must be > 0.

    Raises:
        ValueError: If any parameter is not positive.

    Example:
        ```pycon
        >>> from aresbind.core.validation import validate_pool_params
        >>> validate_pool_params(max_total_connections=100, max_per_route=10, max_idle_time=10.0)

        ```
    """
    if max_total_connections <= 0:
        msg = f"max_total_connections must be > 0, got {max_total_connections}"
        raise ValueError(msg)
    if max_per_route <= 0:
        msg = f"max_per_route must be > 0, got {max_per_route}"
        raise ValueError(msg)
    if max_idle_time <= 0:
        msg = f"max_idle_time must be > 0, got {max_idle_time}"
        raise ValueError(msg)
