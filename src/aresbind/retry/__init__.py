r"""Retry policy and per-call retry state.

Public API:
    - RetryPolicy: Decides whether to retry and the backoff delay
    - RetryState: Attempts made and backoff slept by one call
    - DEFAULT_RETRYABLE_KINDS: Failure kinds retried by default
"""

from __future__ import annotations

__all__ = ["DEFAULT_RETRYABLE_KINDS", "RetryPolicy", "RetryState"]

from aresbind.retry.policy import DEFAULT_RETRYABLE_KINDS, RetryPolicy
from aresbind.retry.state import RetryState
