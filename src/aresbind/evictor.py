r"""Background sweep removing idle connections from a pool."""

from __future__ import annotations

__all__ = ["IdleConnectionEvictor"]

import logging
import threading
from typing import TYPE_CHECKING

from aresbind.core.config import DEFAULT_EVICTION_INTERVAL
from aresbind.core.validation import validate_timeout

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Self

    from aresbind.pool import ConnectionPool

logger: logging.Logger = logging.getLogger(__name__)


class IdleConnectionEvictor:
    r"""Periodically evict idle and expired connections of a pool.

    The sweep runs in a daemon thread, independently of in-flight calls.
    It relies on the pool's own locking, so it never evicts a busy
    connection.

    Args:
        pool: The connection pool to sweep.
        interval: Seconds between two sweeps.

    Example:
        ```pycon
        >>> from aresbind.evictor import IdleConnectionEvictor
        >>> from aresbind.pool import ConnectionPool
        >>> pool = ConnectionPool()
        >>> with IdleConnectionEvictor(pool, interval=0.5) as evictor:
        ...     evictor.is_running
        ...
        True
        >>> evictor.is_running
        False

        ```
    """

    def __init__(self, pool: ConnectionPool, interval: float = DEFAULT_EVICTION_INTERVAL) -> None:
        validate_timeout("interval", interval)
        self._pool = pool
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(interval={self._interval}, running={self.is_running})"

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        r"""Start the sweep thread. Does nothing if it is already
        running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="aresbind-idle-evictor", daemon=True
        )
        self._thread.start()
        logger.debug(f"Started idle connection evictor (interval={self._interval}s)")

    def stop(self, timeout: float | None = None) -> None:
        r"""Stop the sweep thread and wait for it to finish.

        Args:
            timeout: Maximum seconds to wait for the thread.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            if self._pool.is_closed:
                return
            try:
                self._pool.evict_expired()
            except Exception:
                logger.exception("Idle connection sweep failed")
