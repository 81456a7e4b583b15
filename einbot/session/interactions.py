"""
Field interaction primitives.

Each primitive scrolls the element into view, tries the primary interaction and
then at least one alternate path (direct DOM mutation, simulated pointer) before
raising AutomationError. Only clicks are retried.
"""
from __future__ import annotations

import time
from typing import Optional

from einbot.core.errors import AutomationError
from einbot.observability.logging import log
from einbot.session.base import ElementNotReady, InteractiveSession, Locator, by_id
from einbot.settings import settings
from einbot.store.retry import call_with_retry

SETTLE_SEC = 0.5
AFTER_CLICK_SEC = 1.0


def _failed(action: str, label: str, locator: Locator, errors) -> AutomationError:
    details = " | ".join(f"{name}: {str(e)[:160]}" for name, e in errors)
    try:
        log(event="field_interaction_failed", action=action, field=label, locator=str(locator), details=details)
    except Exception:
        pass
    return AutomationError(f"Failed to {action} {label}", details)


def fill_field(session: InteractiveSession, locator: Locator, value: Optional[str], label: str,
               timeout: float = 10) -> None:
    if value is None or str(value) == "":
        raise AutomationError(f"Failed to fill {label}", "no value to enter")
    value = str(value)
    errors = []
    try:
        session.scroll_into_view(locator)
    except ElementNotReady as e:
        errors.append(("scroll", e))
    try:
        session.fill(locator, value, timeout=timeout)
        return
    except ElementNotReady as e:
        errors.append(("fill", e))
    try:
        session.set_value(locator, value)
        log(event="field_filled_via_dom", field=label)
        return
    except ElementNotReady as e:
        errors.append(("dom", e))
    raise _failed("fill", label, locator, errors)


def _click_once(session: InteractiveSession, locator: Locator, label: str, timeout: float) -> None:
    session.wait_for(locator, timeout=timeout)
    session.scroll_into_view(locator)
    time.sleep(SETTLE_SEC)
    errors = []
    for name, action in (
        ("click", lambda: session.click(locator, timeout=timeout)),
        ("js", lambda: session.js_click(locator)),
        ("pointer", lambda: session.pointer_click(locator)),
    ):
        try:
            action()
            time.sleep(AFTER_CLICK_SEC)
            return
        except ElementNotReady as e:
            errors.append((name, e))
    raise ElementNotReady("; ".join(f"{n}: {str(e)[:120]}" for n, e in errors))


def click_button(session: InteractiveSession, locator: Locator, label: str, timeout: float = 10,
                 retries: Optional[int] = None) -> None:
    retries = int(settings.CLICK_RETRIES if retries is None else retries)
    delay_ms = int(float(settings.CLICK_RETRY_DELAY_SEC) * 1000)
    try:
        call_with_retry(
            lambda: _click_once(session, locator, label, timeout),
            attempts=retries + 1,
            delay_ms=lambda attempt: delay_ms,
            retry_on=(ElementNotReady,),
            label=label,
            event_prefix="click",
        )
    except ElementNotReady as e:
        raise _failed("click", label, locator, [("click", e)]) from e


def click_optional(session: InteractiveSession, locator: Locator, label: str, timeout: float) -> bool:
    """Clicks a control that may legitimately be absent. Returns False when it never appears."""
    if not session.exists(locator, timeout=timeout):
        log(event="optional_control_absent", field=label)
        return False
    try:
        session.scroll_into_view(locator)
        session.click(locator, timeout=timeout)
    except ElementNotReady as e:
        log(event="optional_control_click_failed", field=label, error=str(e)[:200])
        return False
    return True


def select_radio(session: InteractiveSession, radio_id: str, label: str) -> None:
    locator = by_id(radio_id)
    errors = []
    try:
        session.scroll_into_view(locator)
    except ElementNotReady as e:
        errors.append(("scroll", e))
    for name, action in (
        ("dom", lambda: session.set_checked(locator)),
        ("click", lambda: session.click(locator)),
        ("pointer", lambda: session.pointer_click(locator)),
    ):
        try:
            action()
            return
        except ElementNotReady as e:
            errors.append((name, e))
    raise _failed("select", label, locator, errors)


def select_dropdown(session: InteractiveSession, locator: Locator, label: str, value: Optional[str] = None,
                    text: Optional[str] = None, timeout: float = 10) -> None:
    if not (value or text):
        raise AutomationError(f"Failed to select {label}", "no option given")
    errors = []
    try:
        session.scroll_into_view(locator)
    except ElementNotReady as e:
        errors.append(("scroll", e))
    try:
        if text:
            session.select_option(locator, label=text, timeout=timeout)
        else:
            session.select_option(locator, value=value, timeout=timeout)
        return
    except ElementNotReady as e:
        errors.append(("select", e))
    if value:
        try:
            session.set_value(locator, value)
            return
        except ElementNotReady as e:
            errors.append(("dom", e))
    raise _failed("select", label, locator, errors)
