# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Bounded retry — one combinator shared by every remote call site.
Sleeps a fixed interval between attempts until a per-operation deadline passes,
then re-raises the last error.
"""

import time
from typing import Callable, TypeVar

from schedule_sync.core.config import settings
from schedule_sync.core.errors import ScheduleSyncError, TransientRemoteError
from schedule_sync.core.logging import get_logger
from schedule_sync.metrics.prometheus import REMOTE_RETRIES

logger = get_logger(__name__)

T = TypeVar("T")


def is_transient(exc: Exception) -> bool:
    return isinstance(exc, TransientRemoteError)


def retry_until(
    operation: Callable[[], T],
    *,
    timeout: float,
    interval: float,
    retryable: Callable[[Exception], bool] = is_transient,
    description: str = "remote call",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Call `operation` until it succeeds, a non-retryable error is raised,
    or `timeout` seconds have elapsed since the first attempt.
    Only ScheduleSyncError subclasses are considered for retry.
    """
    deadline = clock() + timeout
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except ScheduleSyncError as exc:
            if not retryable(exc):
                raise
            if clock() >= deadline:
                logger.warning(
                    "Giving up on %s after %d attempts: %s", description, attempt, exc
                )
                raise
            REMOTE_RETRIES.labels(operation=description).inc()
            logger.info("Retrying %s (attempt %d): %s", description, attempt, exc)
            sleep(interval)


class RetryPolicy:
    """Retry settings bound to a sleep/clock pair, injected into services."""

    def __init__(
        self,
        interval: float = settings.RETRY_INTERVAL_SECONDS,
        lookup_timeout: float = settings.LOOKUP_TIMEOUT_SECONDS,
        read_timeout: float = settings.READ_TIMEOUT_SECONDS,
        write_timeout: float = settings.WRITE_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval = interval
        self.lookup_timeout = lookup_timeout
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self._sleep = sleep
        self._clock = clock

    def call(
        self,
        operation: Callable[[], T],
        timeout: float,
        retryable: Callable[[Exception], bool] = is_transient,
        description: str = "remote call",
    ) -> T:
        return retry_until(
            operation,
            timeout=timeout,
            interval=self.interval,
            retryable=retryable,
            description=description,
            sleep=self._sleep,
            clock=self._clock,
        )
