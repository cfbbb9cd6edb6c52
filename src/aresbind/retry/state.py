r"""Per-call bookkeeping of the retry loop."""

from __future__ import annotations

__all__ = ["RetryState"]

from dataclasses import dataclass


@dataclass
class RetryState:
    r"""Attempts made and backoff slept by one call.

    Attributes:
        attempts: The number of attempts started so far.
        total_backoff: The cumulative backoff delay in seconds.

    Example:
        ```pycon
        >>> from aresbind.retry import RetryState
        >>> state = RetryState()
        >>> state.start_attempt()
        1
        >>> state.record_backoff(0.5)
        >>> state
        RetryState(attempts=1, total_backoff=0.5)

        ```
    """

    attempts: int = 0
    total_backoff: float = 0.0

    def start_attempt(self) -> int:
        r"""Record the start of a new attempt.

        Returns:
            The number of the new attempt (1-indexed).
        """
        self.attempts += 1
        return self.attempts

    def record_backoff(self, delay: float) -> None:
        r"""Record a backoff delay slept before the next attempt.

        Args:
            delay: The delay in seconds.
        """
        self.total_backoff += delay
