from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from common.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class RateLimitSignal(Exception):
    """Raised by a transport call when the remote side asks us to slow down."""

    def __init__(self, status: int | None = None, detail: str = ""):
        self.status = status
        super().__init__(detail or f"rate limited (status={status})")


def is_retryable(exc: BaseException) -> bool:
    """Rate-limit signals and transient transport errors are worth another try."""
    return isinstance(
        exc, (RateLimitSignal, requests.Timeout, requests.ConnectionError)
    )


def is_rate_limit(exc: BaseException) -> bool:
    return isinstance(exc, RateLimitSignal)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed-backoff retry policy applied uniformly to each source's transport call.

    The final exception is re-raised unchanged once attempts run out, so callers
    can translate it into RateLimited / SourceUnavailable.
    """

    max_attempts: int = 3
    backoff_seconds: float = 5.0
    retry_on: Callable[[BaseException], bool] = is_retryable
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception(self.retry_on),
            before_sleep=before_sleep_log(log, logging.WARNING),
            sleep=self.sleep,
            reraise=True,
        )

    def wrap(self, fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs) -> T:
            return self.retrying()(fn, *args, **kwargs)

        return wrapper

    def call(self, fn: Callable[..., T], *args, **kwargs) -> T:
        return self.wrap(fn)(*args, **kwargs)
