r"""Unit tests for the retry policy."""

from __future__ import annotations

import httpcore
import httpx
import pytest

from aresbind.backoff import ConstantBackoff
from aresbind.core.config import ClientConfig
from aresbind.outcome import Failure, FailureKind, Success
from aresbind.retry import DEFAULT_RETRYABLE_KINDS, RetryPolicy


def failure(kind: FailureKind) -> Failure:
    return Failure(kind, OSError(kind.value))


#################################
#     Tests for RetryPolicy     #
#################################


def test_retry_policy_defaults() -> None:
    policy = RetryPolicy()
    assert policy.max_retries == 1
    assert isinstance(policy.backoff_strategy, ConstantBackoff)
    assert policy.backoff_strategy.delay == 1.0
    assert policy.retryable_kinds == DEFAULT_RETRYABLE_KINDS


def test_retry_policy_from_config() -> None:
    policy = RetryPolicy.from_config(ClientConfig(max_retries=4, retry_backoff_interval=0.25))
    assert policy.max_retries == 4
    assert policy.backoff_delay(1) == 0.25
    assert policy.backoff_delay(3) == 0.25


def test_retry_policy_negative_max_retries() -> None:
    with pytest.raises(ValueError, match=r"max_retries must be >= 0"):
        RetryPolicy(max_retries=-1)


@pytest.mark.parametrize(
    "kind",
    [
        FailureKind.CONNECT_TIMEOUT,
        FailureKind.CONNECTION_ACQUIRE_TIMEOUT,
        FailureKind.CONNECTION_RESET,
        FailureKind.OTHER_IO,
    ],
)
def test_should_retry_retryable_kinds(kind: FailureKind) -> None:
    assert RetryPolicy(max_retries=2).should_retry(1, failure(kind))


@pytest.mark.parametrize("kind", [FailureKind.RESPONSE_TIMEOUT, FailureKind.NON_RETRYABLE])
def test_should_retry_never_retries_unsafe_kinds(kind: FailureKind) -> None:
    assert not RetryPolicy(max_retries=5).should_retry(1, failure(kind))


def test_should_retry_success() -> None:
    assert not RetryPolicy(max_retries=5).should_retry(1, Success(httpx.Response(503)))


@pytest.mark.parametrize(
    ("max_retries", "attempt", "expected"),
    [(0, 1, False), (1, 1, True), (1, 2, False), (3, 3, True), (3, 4, False)],
)
def test_should_retry_budget(max_retries: int, attempt: int, expected: bool) -> None:
    """Test that at most max_retries + 1 attempts are made."""
    policy = RetryPolicy(max_retries=max_retries)
    outcome = Failure(FailureKind.CONNECT_TIMEOUT, httpcore.ConnectTimeout("timed out"))
    assert policy.should_retry(attempt, outcome) is expected


def test_retry_policy_custom_retryable_kinds() -> None:
    policy = RetryPolicy(max_retries=1, retryable_kinds=[FailureKind.RESPONSE_TIMEOUT])
    assert policy.should_retry(1, failure(FailureKind.RESPONSE_TIMEOUT))
    assert not policy.should_retry(1, failure(FailureKind.OTHER_IO))


def test_retry_policy_custom_backoff_strategy() -> None:
    policy = RetryPolicy(backoff_strategy=ConstantBackoff(delay=0.0))
    assert policy.backoff_delay(1) == 0.0


def test_retry_policy_repr() -> None:
    assert repr(RetryPolicy(max_retries=2, retryable_kinds=[FailureKind.OTHER_IO])) == (
        "RetryPolicy(max_retries=2, backoff_strategy=ConstantBackoff(delay=1.0), "
        "retryable_kinds=['other-io'])"
    )
