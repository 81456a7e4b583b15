from __future__ import annotations

import base64
from contextlib import contextmanager
from typing import Any, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from einbot.core.errors import SessionUnavailable
from einbot.observability.logging import log
from einbot.session.base import ElementNotReady, Locator, WaitTimeout
from einbot.settings import settings

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--window-size=1920,1080",
]


def _selector(locator: Locator) -> str:
    if locator.kind == "id":
        return f'[id="{locator.value}"]'
    if locator.kind == "xpath":
        return f"xpath={locator.value}"
    return f"css={locator.value}"


@contextmanager
def _translate(locator: Optional[Locator] = None):
    try:
        yield
    except PlaywrightTimeoutError as e:
        raise WaitTimeout(f"timeout waiting for {locator}: {str(e)[:200]}") from e
    except PlaywrightError as e:
        raise ElementNotReady(f"{locator}: {str(e)[:200]}") from e


class PlaywrightSession:
    """Chromium session driven through playwright.sync_api."""

    def __init__(self, headless: Optional[bool] = None, step_timeout: Optional[float] = None):
        self._console: List[str] = []
        self._dialogs: List[str] = []
        self._pw = sync_playwright().start()
        try:
            self._browser = self._pw.chromium.launch(
                headless=settings.HEADLESS if headless is None else headless,
                args=LAUNCH_ARGS,
            )
            self._context = self._browser.new_context(
                user_agent=USER_AGENT,
                viewport={"width": 1920, "height": 1080},
                ignore_https_errors=True,
            )
            self._context.set_default_timeout(float(step_timeout or settings.STEP_TIMEOUT_SEC) * 1000)
            self.page = self._context.new_page()
        except Exception:
            self._pw.stop()
            raise
        self.page.on("console", self._on_console)
        self.page.on("dialog", self._on_dialog)

    def _on_console(self, msg) -> None:
        self._console.append(f"{msg.type}: {msg.text}")

    def _on_dialog(self, dialog) -> None:
        self._dialogs.append(dialog.message)
        self._console.append(f"dialog: {dialog.message}")
        dialog.accept()

    def _loc(self, locator: Locator):
        return self.page.locator(_selector(locator)).first

    # navigation

    def navigate(self, url: str) -> None:
        with _translate():
            self.page.goto(url, wait_until="load")

    def accept_dialogs(self, timeout: float = 5) -> Optional[str]:
        if self._dialogs:
            return self._dialogs[-1]
        try:
            dialog = self.page.wait_for_event("dialog", timeout=timeout * 1000)
        except PlaywrightTimeoutError:
            return None
        return dialog.message

    def current_url(self) -> str:
        return self.page.url

    # waits

    def wait_for(self, locator: Locator, timeout: float = 10, state: str = "attached") -> None:
        with _translate(locator):
            self._loc(locator).wait_for(state=state, timeout=timeout * 1000)

    def exists(self, locator: Locator, timeout: float = 0) -> bool:
        if timeout <= 0:
            return self.page.locator(_selector(locator)).count() > 0
        try:
            self.wait_for(locator, timeout=timeout)
        except ElementNotReady:
            return False
        return True

    def wait_ready(self, timeout: float = 10) -> None:
        with _translate():
            self.page.wait_for_load_state("load", timeout=timeout * 1000)
            self.page.wait_for_function("document.readyState === 'complete'", timeout=timeout * 1000)

    # interactions

    def scroll_into_view(self, locator: Locator) -> None:
        with _translate(locator):
            self._loc(locator).evaluate("el => el.scrollIntoView({block: 'center'})")

    def click(self, locator: Locator, timeout: float = 10) -> None:
        with _translate(locator):
            self._loc(locator).click(timeout=timeout * 1000)

    def js_click(self, locator: Locator) -> None:
        with _translate(locator):
            self._loc(locator).evaluate("el => el.click()")

    def pointer_click(self, locator: Locator) -> None:
        with _translate(locator):
            box = self._loc(locator).bounding_box()
            if not box:
                raise ElementNotReady(f"{locator} has no layout box")
            self.page.mouse.click(box["x"] + box["width"] / 2, box["y"] + box["height"] / 2)

    def fill(self, locator: Locator, text: str, timeout: float = 10) -> None:
        with _translate(locator):
            loc = self._loc(locator)
            loc.wait_for(state="visible", timeout=timeout * 1000)
            loc.fill("", timeout=timeout * 1000)
            loc.fill(text, timeout=timeout * 1000)

    def set_value(self, locator: Locator, text: str) -> None:
        with _translate(locator):
            self._loc(locator).evaluate(
                """(el, v) => {
                    el.value = v;
                    el.dispatchEvent(new Event('input', {bubbles: true}));
                    el.dispatchEvent(new Event('change', {bubbles: true}));
                }""",
                text,
            )

    def select_option(self, locator: Locator, value: Optional[str] = None, label: Optional[str] = None,
                      timeout: float = 10) -> None:
        with _translate(locator):
            loc = self._loc(locator)
            if label is not None:
                loc.select_option(label=label, timeout=timeout * 1000)
            else:
                loc.select_option(value=value, timeout=timeout * 1000)

    def set_checked(self, locator: Locator) -> None:
        with _translate(locator):
            self._loc(locator).evaluate(
                """el => {
                    el.checked = true;
                    el.dispatchEvent(new Event('click', {bubbles: true}));
                    el.dispatchEvent(new Event('change', {bubbles: true}));
                }"""
            )

    # reads

    def text_of(self, locator: Locator, timeout: float = 10) -> str:
        with _translate(locator):
            return self._loc(locator).inner_text(timeout=timeout * 1000)

    def attribute_of(self, locator: Locator, name: str, timeout: float = 10) -> Optional[str]:
        with _translate(locator):
            return self._loc(locator).get_attribute(name, timeout=timeout * 1000)

    def texts_of(self, locator: Locator) -> List[str]:
        with _translate(locator):
            return self.page.locator(_selector(locator)).all_inner_texts()

    def page_text(self) -> str:
        with _translate():
            return self.page.inner_text("body")

    def page_source(self) -> str:
        with _translate():
            return self.page.content()

    # scripts and documents

    def execute_script(self, script: str, *args: Any) -> Any:
        with _translate():
            return self.page.evaluate(script, list(args))

    def execute_async_script(self, script: str, timeout: float = 30) -> Any:
        """`script` is a function expression returning a promise; it is raced against `timeout`."""
        wrapped = (
            "([ms]) => Promise.race(["
            f"({script})(),"
            "new Promise((_, reject) => setTimeout(() => reject(new Error('script timeout')), ms))"
            "])"
        )
        with _translate():
            return self.page.evaluate(wrapped, [int(timeout * 1000)])

    def print_to_pdf(self, options: dict) -> bytes:
        with _translate():
            cdp = self._context.new_cdp_session(self.page)
            try:
                result = cdp.send("Page.printToPDF", options)
            finally:
                cdp.detach()
        return base64.b64decode(result["data"])

    def download(self, url: str) -> Tuple[bytes, str]:
        with _translate():
            resp = self._context.request.get(url)
            if not resp.ok:
                raise ElementNotReady(f"download {url} returned {resp.status}")
            return resp.body(), resp.headers.get("content-type", "")

    def console_logs(self) -> List[str]:
        return list(self._console)

    # lifecycle

    def quit(self) -> None:
        self._context.close()
        self._browser.close()
        self._pw.stop()

    def force_close(self) -> None:
        for step, fn in (("browser", self._browser.close), ("driver", self._pw.stop)):
            try:
                fn()
            except Exception as e:
                log(event="session_force_close_step_failed", step=step, error=str(e)[:200])


def open_session() -> PlaywrightSession:
    try:
        session = PlaywrightSession()
    except Exception as e:
        log(event="session_start_failed", errorType=type(e).__name__, error=str(e)[:300])
        raise SessionUnavailable(str(e)) from e
    log(event="session_started", headless=bool(settings.HEADLESS))
    return session
