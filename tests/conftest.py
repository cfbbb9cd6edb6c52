from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import pytest

from aresbind.core.config import ClientConfig

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def mock_sleep() -> Generator[Mock, None, None]:
    """Patch time.sleep to make tests run faster."""
    with patch("time.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def fast_config() -> ClientConfig:
    """Create a ClientConfig with short timeouts for testing."""
    return ClientConfig(
        connect_timeout=1.0,
        connection_acquire_timeout=0.2,
        response_timeout=1.0,
        max_retries=2,
        retry_backoff_interval=0.5,
    )
