"""
Interactive session capability set.

The form flow, capture pipeline and diagnosis depend only on this protocol;
PlaywrightSession is the production adapter and tests use an in-memory fake.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Tuple


class ElementNotReady(Exception):
    """Element missing, detached, hidden or not interactable."""


class WaitTimeout(ElementNotReady):
    pass


@dataclass(frozen=True)
class Locator:
    kind: str  # id | xpath | css
    value: str

    def __str__(self) -> str:
        return f"{self.kind}={self.value}"


def by_id(value: str) -> Locator:
    return Locator("id", value)


def by_xpath(value: str) -> Locator:
    return Locator("xpath", value)


def by_css(value: str) -> Locator:
    return Locator("css", value)


class InteractiveSession(Protocol):
    def navigate(self, url: str) -> None: ...

    def accept_dialogs(self, timeout: float = 5) -> Optional[str]: ...

    def wait_for(self, locator: Locator, timeout: float = 10, state: str = "attached") -> None: ...

    def exists(self, locator: Locator, timeout: float = 0) -> bool: ...

    def scroll_into_view(self, locator: Locator) -> None: ...

    def click(self, locator: Locator, timeout: float = 10) -> None: ...

    def js_click(self, locator: Locator) -> None: ...

    def pointer_click(self, locator: Locator) -> None: ...

    def fill(self, locator: Locator, text: str, timeout: float = 10) -> None: ...

    def set_value(self, locator: Locator, text: str) -> None: ...

    def select_option(self, locator: Locator, value: Optional[str] = None, label: Optional[str] = None,
                      timeout: float = 10) -> None: ...

    def set_checked(self, locator: Locator) -> None: ...

    def text_of(self, locator: Locator, timeout: float = 10) -> str: ...

    def attribute_of(self, locator: Locator, name: str, timeout: float = 10) -> Optional[str]: ...

    def texts_of(self, locator: Locator) -> List[str]: ...

    def page_text(self) -> str: ...

    def page_source(self) -> str: ...

    def current_url(self) -> str: ...

    def execute_script(self, script: str, *args: Any) -> Any: ...

    def execute_async_script(self, script: str, timeout: float = 30) -> Any: ...

    def wait_ready(self, timeout: float = 10) -> None: ...

    def print_to_pdf(self, options: dict) -> bytes: ...

    def download(self, url: str) -> Tuple[bytes, str]: ...

    def console_logs(self) -> List[str]: ...

    def quit(self) -> None: ...

    def force_close(self) -> None: ...
