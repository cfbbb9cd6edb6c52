r"""Retry decision logic for failed request attempts.

This module provides the RetryPolicy class that decides, for each failed
attempt, whether the request should be attempted again and how long to
wait before doing so.
"""

from __future__ import annotations

__all__ = ["DEFAULT_RETRYABLE_KINDS", "RetryPolicy"]

import logging
from typing import TYPE_CHECKING

from aresbind.backoff import ConstantBackoff
from aresbind.core.config import DEFAULT_MAX_RETRIES
from aresbind.core.validation import validate_retry_params
from aresbind.outcome import Failure, FailureKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aresbind.backoff import BaseBackoffStrategy
    from aresbind.core.config import ClientConfig
    from aresbind.outcome import AttemptOutcome

logger: logging.Logger = logging.getLogger(__name__)

# Connection level failures where the request never reached the
# application. A response timeout is excluded because the server may
# already have processed the request.
DEFAULT_RETRYABLE_KINDS: frozenset[FailureKind] = frozenset(
    {
        FailureKind.CONNECT_TIMEOUT,
        FailureKind.CONNECTION_ACQUIRE_TIMEOUT,
        FailureKind.CONNECTION_RESET,
        FailureKind.OTHER_IO,
    }
)


class RetryPolicy:
    r"""Decide whether a failed attempt is retried and the delay before
    the next attempt.

    Args:
        max_retries: Maximum number of retries. The total number of
            attempts is ``max_retries + 1``.
        backoff_strategy: Strategy computing the delay between two
            attempts. Defaults to a fixed-interval ``ConstantBackoff``.
        retryable_kinds: The failure kinds that can be retried.

    Example:
        ```pycon
        >>> import httpcore
        >>> from aresbind.outcome import Failure, FailureKind
        >>> from aresbind.retry import RetryPolicy
        >>> policy = RetryPolicy(max_retries=1)
        >>> failure = Failure(FailureKind.CONNECT_TIMEOUT, httpcore.ConnectTimeout())
        >>> policy.should_retry(1, failure)
        True
        >>> policy.should_retry(2, failure)
        False
        >>> policy.backoff_delay(1)
        1.0

        ```
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_strategy: BaseBackoffStrategy | None = None,
        retryable_kinds: Iterable[FailureKind] = DEFAULT_RETRYABLE_KINDS,
    ) -> None:
        validate_retry_params(max_retries=max_retries)
        self.max_retries = max_retries
        self.backoff_strategy: BaseBackoffStrategy = (
            backoff_strategy if backoff_strategy is not None else ConstantBackoff()
        )
        self.retryable_kinds = frozenset(retryable_kinds)

    def __repr__(self) -> str:
        kinds = sorted(kind.value for kind in self.retryable_kinds)
        return (
            f"{self.__class__.__qualname__}(max_retries={self.max_retries}, "
            f"backoff_strategy={self.backoff_strategy!r}, retryable_kinds={kinds})"
        )

    @classmethod
    def from_config(cls, config: ClientConfig) -> RetryPolicy:
        r"""Create the retry policy described by a client configuration.

        Args:
            config: The client configuration.

        Returns:
            A retry policy with a fixed-interval backoff.
        """
        return cls(
            max_retries=config.max_retries,
            backoff_strategy=ConstantBackoff(delay=config.retry_backoff_interval),
        )

    def should_retry(self, attempt: int, outcome: AttemptOutcome) -> bool:
        r"""Determine if another attempt should be made.

        Args:
            attempt: The number of the attempt that produced the outcome
                (1-indexed).
            outcome: The outcome of that attempt.

        Returns:
            ``True`` if the outcome is a retryable failure and the retry
            budget is not exhausted, otherwise ``False``.
        """
        if not isinstance(outcome, Failure):
            return False
        if attempt > self.max_retries:
            logger.debug(f"Not retrying {outcome.kind.value}: {attempt} attempts made")
            return False
        return outcome.kind in self.retryable_kinds

    def backoff_delay(self, attempt: int) -> float:
        r"""Return the delay before the attempt following ``attempt``.

        Args:
            attempt: The number of the failed attempt (1-indexed).

        Returns:
            The delay in seconds.
        """
        return self.backoff_strategy.calculate(attempt - 1)
