r"""Fixed-interval backoff strategy."""

from __future__ import annotations

__all__ = ["ConstantBackoff"]

from aresbind.backoff.base import BaseBackoffStrategy
from aresbind.core.config import DEFAULT_RETRY_BACKOFF_INTERVAL


class ConstantBackoff(BaseBackoffStrategy):
    """Fixed-interval backoff strategy.

    Returns the same delay before every retry, regardless of the retry
    number, which keeps the latency of a call bounded and predictable for
    a small number of retries.

    Args:
        delay: The fixed delay in seconds (default: 1.0).

    Example:
        ```pycon
        >>> from aresbind.backoff import ConstantBackoff
        >>> backoff = ConstantBackoff(delay=2.5)
        >>> backoff.calculate(0)
        2.5
        >>> backoff.calculate(10)
        2.5

        ```
    """

    def __init__(self, delay: float = DEFAULT_RETRY_BACKOFF_INTERVAL) -> None:
        if delay < 0:
            msg = f"delay must be non-negative, got {delay}"
            raise ValueError(msg)

        self.delay = delay

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(delay={self.delay})"

    def calculate(self, attempt: int) -> float:  # noqa: ARG002
        """Return the fixed delay.

        Args:
            attempt: The retry number (0-indexed, unused).

        Returns:
            The fixed delay value.
        """
        return self.delay
