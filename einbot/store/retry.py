"""
Bounded retry policy
--------------------
Single place for retry/backoff in the service. Durable-store writes use
upload_with_retry (exponential backoff, 5 attempts from 2s by default);
field interactions reuse call_with_retry with a fixed delay.

Writes are idempotent by name (the store overwrites), so a retry always
repeats the whole write.
"""
from __future__ import annotations

import random
import threading
import time
from typing import Callable, Optional, Tuple, Type

from einbot.core.errors import RunCancelled, UploadError
from einbot.observability.logging import log
from einbot.settings import settings
import einbot.observability.metrics as metrics


def _calc_backoff(attempt: int) -> int:
    """Exponential backoff in ms: base * 2^(attempt-1), optional +/-10% jitter, capped."""
    base = int(getattr(settings, "UPLOAD_BASE_DELAY_MS", 2000) or 2000)
    max_delay = int(getattr(settings, "UPLOAD_MAX_DELAY_MS", 60000) or 60000)
    delay = base * (2 ** (attempt - 1))
    if getattr(settings, "UPLOAD_JITTER", False):
        delay = delay + delay * 0.1 * random.uniform(-1, 1)
    return min(max_delay, int(delay))


def _pause(seconds: float, cancel: Optional[threading.Event]) -> None:
    if seconds <= 0:
        return
    if cancel is not None:
        if cancel.wait(seconds):
            raise RunCancelled("cancelled while waiting to retry")
        return
    time.sleep(seconds)


def call_with_retry(
    fn: Callable[[], object],
    *,
    attempts: int,
    delay_ms: Callable[[int], int],
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    label: str = "",
    event_prefix: str = "retry",
    cancel: Optional[threading.Event] = None,
):
    """
    Run fn up to `attempts` times. Between failures wait delay_ms(attempt).
    Logs one `{prefix}_retry` event per scheduled retry and re-raises the last
    error once attempts are exhausted.
    """
    attempts = max(1, int(attempts))
    last_exc: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        if cancel is not None and cancel.is_set():
            raise RunCancelled(f"cancelled before attempt {attempt} of {label}")
        try:
            return fn()
        except retry_on as e:
            last_exc = e
            if attempt >= attempts:
                break
            wait_ms = int(delay_ms(attempt))
            try:
                log(
                    event=f"{event_prefix}_retry",
                    target=label,
                    attempt=attempt,
                    maxAttempts=attempts,
                    backoffMs=wait_ms,
                    errorType=type(e).__name__,
                    error=str(e)[:300],
                )
            except Exception:
                pass
            _pause(wait_ms / 1000.0, cancel)
    assert last_exc is not None
    raise last_exc


def upload_with_retry(
    store,
    data: bytes,
    name: str,
    content_type: str,
    *,
    hidden: bool = True,
    cancel: Optional[threading.Event] = None,
) -> str:
    """Writes one blob through the store with bounded exponential backoff. Returns its URL."""
    max_attempts = int(getattr(settings, "UPLOAD_MAX_ATTEMPTS", 5) or 5)
    calls = {"n": 0}

    def _write():
        calls["n"] += 1
        if calls["n"] > 1:
            metrics.increment(metrics.K_UPLOAD_RETRIES)
        return store.put(data, name, content_type, hidden=hidden)

    try:
        url = call_with_retry(
            _write,
            attempts=max_attempts,
            delay_ms=_calc_backoff,
            label=name,
            event_prefix="upload",
            cancel=cancel,
        )
    except RunCancelled:
        raise
    except Exception as e:
        metrics.increment(metrics.K_UPLOAD_EXHAUSTED)
        log(event="upload_exhausted", target=name, attempts=calls["n"], errorType=type(e).__name__, error=str(e)[:300])
        raise UploadError(name, calls["n"], str(e)) from e

    log(event="upload_ok", target=name, attempts=calls["n"], url=url)
    return url
