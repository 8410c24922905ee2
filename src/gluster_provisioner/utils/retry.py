# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/utils/retry.py

import functools
import time
from typing import Callable, Optional


class RetryError(RuntimeError):
    """All attempts failed; the last exception is chained as __cause__."""


def backoff_delays(retries: int, delay: float, backoff: float = 1.0, max_delay: Optional[float] = None):
    """Sleep between attempt n and n+1: delay * backoff**(n-1), capped at max_delay."""
    wait = delay
    for _ in range(max(retries - 1, 0)):
        yield wait if max_delay is None else min(wait, max_delay)
        wait *= backoff


def retry(
    *,
    retries: int,
    delay: float,
    backoff: float = 1.0,
    max_delay: Optional[float] = None,
    retry_on: tuple[type[Exception], ...] = (Exception,),
    on_retry: Callable[[int, Exception], None] | None = None,
):
    """
    Retry decorator for steps that are safe to repeat: opening an SSH
    connection, read-only checks. Never wrap a command that mutates a host.

    on_retry(attempt, exc) is called after every failed attempt.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            waits = backoff_delays(retries, delay, backoff, max_delay)
            last_exc = None
            for attempt in range(1, retries + 1):
                try:
                    return fn(*args, **kwargs)
                except retry_on as exc:
                    last_exc = exc
                    if on_retry:
                        on_retry(attempt, exc)
                    wait = next(waits, None)
                    if wait is None:
                        break
                    time.sleep(wait)
            raise RetryError(f"{fn.__name__} failed after {retries} attempts") from last_exc
        return wrapper
    return decorator
