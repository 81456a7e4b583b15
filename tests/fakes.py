"""
In-memory doubles shared by the test modules: a scripted interactive session,
an artifact store and a small Redis stand-in.
"""
import time
from typing import Any, Dict, List, Optional, Set, Tuple

from einbot.core.models import CaseRecord, LlcDetails
from einbot.session.base import ElementNotReady, Locator, WaitTimeout

PDF = b"%PDF-1.4 fake"


class FakeSession:
    """
    Every control is present and interactable unless configured otherwise:
    - missing: locator values that time out in wait_for
    - broken: locator values whose interactions raise ElementNotReady
    - present: locator values for which exists() is True
    - texts / lists / attributes: values served by text_of / texts_of / attribute_of
    """

    def __init__(
        self,
        source: str = "",
        texts: Optional[Dict[str, str]] = None,
        lists: Optional[Dict[str, List[str]]] = None,
        attributes: Optional[Dict[Tuple[str, str], str]] = None,
        missing: Optional[Set[str]] = None,
        broken: Optional[Set[str]] = None,
        present: Optional[Set[str]] = None,
        pdf: Optional[bytes] = PDF,
        client_pdf: Any = None,
        letter: Optional[Tuple[bytes, str]] = (PDF, "application/pdf"),
        quit_error: Optional[Exception] = None,
    ):
        self.source = source
        self.texts = texts or {}
        self.lists = lists or {}
        self.attributes = attributes or {}
        self.missing = missing or set()
        self.broken = broken or set()
        self.present = present or set()
        self.pdf = pdf
        self.client_pdf = client_pdf
        self.letter = letter
        self.quit_error = quit_error
        self.calls: List[Tuple[str, str, Any]] = []
        self.quit_calls = 0
        self.force_close_calls = 0

    def _record(self, action: str, locator: Optional[Locator] = None, value: Any = None) -> None:
        self.calls.append((action, locator.value if locator is not None else "", value))

    def _check(self, locator: Locator) -> None:
        if locator.value in self.broken:
            raise ElementNotReady(f"{locator} is broken")

    def actions(self, action: str) -> List[Tuple[str, Any]]:
        return [(loc, val) for a, loc, val in self.calls if a == action]

    def touched(self, value: str) -> bool:
        return any(loc == value for _, loc, _ in self.calls)

    def navigate(self, url: str) -> None:
        self._record("navigate", value=url)

    def accept_dialogs(self, timeout: float = 5) -> Optional[str]:
        return None

    def wait_for(self, locator: Locator, timeout: float = 10, state: str = "attached") -> None:
        if locator.value in self.missing:
            raise WaitTimeout(f"timeout waiting for {locator}")

    def exists(self, locator: Locator, timeout: float = 0) -> bool:
        return locator.value in self.present

    def scroll_into_view(self, locator: Locator) -> None:
        self._check(locator)

    def click(self, locator: Locator, timeout: float = 10) -> None:
        self._check(locator)
        self._record("click", locator)

    def js_click(self, locator: Locator) -> None:
        self._check(locator)
        self._record("js_click", locator)

    def pointer_click(self, locator: Locator) -> None:
        self._check(locator)
        self._record("pointer_click", locator)

    def fill(self, locator: Locator, text: str, timeout: float = 10) -> None:
        self._check(locator)
        self._record("fill", locator, text)

    def set_value(self, locator: Locator, text: str) -> None:
        self._check(locator)
        self._record("set_value", locator, text)

    def select_option(self, locator: Locator, value: Optional[str] = None, label: Optional[str] = None,
                      timeout: float = 10) -> None:
        self._check(locator)
        self._record("select", locator, label or value)

    def set_checked(self, locator: Locator) -> None:
        self._check(locator)
        self._record("check", locator)

    def text_of(self, locator: Locator, timeout: float = 10) -> str:
        if locator.value not in self.texts:
            raise WaitTimeout(f"no text for {locator}")
        return self.texts[locator.value]

    def attribute_of(self, locator: Locator, name: str, timeout: float = 10) -> Optional[str]:
        key = (locator.value, name)
        if key not in self.attributes:
            raise WaitTimeout(f"no attribute {name} for {locator}")
        return self.attributes[key]

    def texts_of(self, locator: Locator) -> List[str]:
        return list(self.lists.get(locator.value, []))

    def page_text(self) -> str:
        return self.source

    def page_source(self) -> str:
        return self.source

    def current_url(self) -> str:
        return "https://form.test/current"

    def execute_script(self, script: str, *args: Any) -> Any:
        return None

    def execute_async_script(self, script: str, timeout: float = 30) -> Any:
        self._record("async_script")
        return self.client_pdf

    def wait_ready(self, timeout: float = 10) -> None:
        return None

    def print_to_pdf(self, options: dict) -> bytes:
        self._record("print_to_pdf", value=dict(options))
        if self.pdf is None:
            raise RuntimeError("print failed")
        return self.pdf

    def download(self, url: str) -> Tuple[bytes, str]:
        self._record("download", value=url)
        if self.letter is None:
            raise RuntimeError("download failed")
        return self.letter

    def console_logs(self) -> List[str]:
        return ["log: page loaded"]

    def quit(self) -> None:
        self.quit_calls += 1
        if self.quit_error is not None:
            raise self.quit_error

    def force_close(self) -> None:
        self.force_close_calls += 1


class FakeStore:
    """Records writes; the first `failures` writes raise."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.puts: List[Tuple[str, bytes, str, bool]] = []
        self.calls = 0

    def put(self, data: bytes, name: str, content_type: str, hidden: bool = True) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"store unavailable ({self.calls})")
        self.puts.append((name, data, content_type, hidden))
        return f"https://blob.test/artifacts/{name}"

    def names(self) -> List[str]:
        return [p[0] for p in self.puts]

    def data_for(self, suffix: str) -> bytes:
        for name, data, _, _ in self.puts:
            if name.endswith(suffix):
                return data
        raise KeyError(suffix)


class FakeRedis:
    """Just enough of redis-py for locks, run state and counters."""

    def __init__(self):
        self.kv: Dict[str, Any] = {}
        self.expiry: Dict[str, float] = {}

    def get(self, key):
        return self.kv.get(key)

    def set(self, key, value, px=None, nx=False):
        if nx and key in self.kv:
            return None
        self.kv[key] = value
        if px:
            self.expiry[key] = time.time() + px / 1000.0
        return True

    def delete(self, key):
        existed = key in self.kv
        self.kv.pop(key, None)
        self.expiry.pop(key, None)
        return int(existed)

    def eval(self, script, numkeys, key, token):
        if self.kv.get(key) == token:
            return self.delete(key)
        return 0

    def pttl(self, key):
        if key not in self.kv:
            return -2
        if key not in self.expiry:
            return -1
        return int((self.expiry[key] - time.time()) * 1000)

    def incr(self, key, n=1):
        self.kv[key] = int(self.kv.get(key) or 0) + n
        return self.kv[key]

    def lpush(self, key, value):
        self.kv.setdefault(key, []).insert(0, str(value))

    def ltrim(self, key, start, end):
        self.kv[key] = self.kv.get(key, [])[start:end + 1]

    def lrange(self, key, start, end):
        return self.kv.get(key, [])[start:end + 1]


IDENTIFIER_CELL = "td[align='left'] > b"
LETTER_LINK = "//a[contains(text(), 'EIN Confirmation Letter') and contains(@href, '.pdf')]"


def issued_session(**kwargs) -> FakeSession:
    """A session whose result page carries an identifier and a letter link."""
    texts = kwargs.pop("texts", {IDENTIFIER_CELL: "12-3456789"})
    attributes = kwargs.pop("attributes", {(LETTER_LINK, "href"): "/modiein/letters/CP575.pdf"})
    return FakeSession(texts=texts, attributes=attributes, **kwargs)


def llc_case(**overrides) -> CaseRecord:
    fields = dict(
        record_id="a0X001",
        entity_name="Acme Widgets LLC",
        entity_type="Limited Liability Company (LLC)",
        formation_date="2024-03-15",
        business_description="Widget retail",
        business_address_1="100 Main St",
        business_address_2="Suite 5",
        entity_state="Florida",
        city="Miami",
        zip_code="33101",
        ssn_decrypted="123-45-6789",
        entity_members={
            "first_name_1": "Jane",
            "middle_name_1": "",
            "last_name_1": "Doe",
            "phone_1": "(305) 555-0100",
            "name_1": "Jane Doe",
            "percent_ownership_1": "100",
        },
        mailing_address=({
            "mailingStreet": "100 Main St Suite 5",
            "mailingCity": "Miami",
            "mailingState": "FL",
            "mailingZip": "33101",
        },),
        county="Florida",
        llc_details=LlcDetails(numberOfMembers="2"),
    )
    fields.update(overrides)
    return CaseRecord(**fields)
