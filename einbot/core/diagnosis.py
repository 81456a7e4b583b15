"""
Failure diagnosis
-----------------
Turns a failed remote page into a human-readable reason.

Two modes:
- live: ordered lookups against the running session (error container id,
  error class, failure-header text), each collecting the sibling error texts;
- raw markup: four ordered regex patterns over saved page source, first
  pattern with results wins.

Both return "" when nothing is found. Stateless and safe to share.
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from einbot.observability.logging import log
from einbot.session.base import InteractiveSession, by_id, by_xpath

ERROR_CONTAINER_ID = "errorListId"
ERROR_CLASS = "validation_error_text"
ERROR_HEADER = "Error(s) has occurred:"
ERROR_LINK_STYLE = "#990000"

UNABLE_PHRASE = "we are unable to provide you with an ein"
REFERENCE_RE = re.compile(r"reference number\s+(\d+)", re.IGNORECASE)

_CLASS_XPATH = f"//*[contains(concat(' ', normalize-space(@class), ' '), ' {ERROR_CLASS} ')]"

MARKUP_PATTERNS = (
    # styled anchor carrying the message
    re.compile(
        r"""<a[^>]*href="[^"]*"[^>]*style="[^"]*color:\s*[`'"]?#990000[`'"]?[^"]*"[^>]*>([^<]+)</a>""",
        re.IGNORECASE | re.DOTALL,
    ),
    # list item with the error class, optionally wrapping an anchor
    re.compile(
        r"""<li[^>]*class="[^"]*validation_error_text[^"]*"[^>]*>(?:<a[^>]*>)?([^<]+)(?:</a>)?</li>""",
        re.IGNORECASE | re.DOTALL,
    ),
    # any element with the error class except the header itself
    re.compile(
        r"""<[^>]*class="[^"]*validation_error_text[^"]*"[^>]*>(?!Error\(s\) has occurred:)([^<]+)</[^>]*>""",
        re.IGNORECASE | re.DOTALL,
    ),
    # first text node after the header
    re.compile(r"""Error\(s\) has occurred:[^<]*<[^>]*>([^<]+)""", re.IGNORECASE | re.DOTALL),
)


def _clean(texts: List[str]) -> List[str]:
    out = []
    for t in texts:
        t = (t or "").strip()
        if not t or t.lower() == ERROR_HEADER.lower():
            continue
        out.append(t)
    return out


def _live_strategies():
    container = f"//*[@id='{ERROR_CONTAINER_ID}']/.."
    header = f"//*[contains(text(), 'Error(s) has occurred')]/.."
    return (
        ("container", by_id(ERROR_CONTAINER_ID), (
            by_xpath(f"{container}//a[contains(@style, '{ERROR_LINK_STYLE}')]"),
            by_xpath(f"{container}//li[@class='{ERROR_CLASS}']"),
        )),
        ("class", by_xpath(_CLASS_XPATH), (
            by_xpath(f"{_CLASS_XPATH}//a[contains(@style, '{ERROR_LINK_STYLE}')]"),
            by_xpath(_CLASS_XPATH),
        )),
        ("header", by_xpath("//*[contains(text(), 'Error(s) has occurred')]"), (
            by_xpath(f"{header}//a[contains(@style, '{ERROR_LINK_STYLE}')]"),
        )),
    )


def extract_error_message(session: InteractiveSession) -> str:
    """Live-session diagnosis. Never raises."""
    try:
        for name, probe, collectors in _live_strategies():
            if not session.exists(probe):
                continue
            for collector in collectors:
                texts = [t for t in _clean(session.texts_of(collector)) if ERROR_HEADER not in t]
                if texts:
                    message = "; ".join(texts)
                    log(event="diagnosis_live_found", strategy=name, message=message)
                    return message
            # the first strategy whose anchor exists decides
            return ""
        log(event="diagnosis_live_empty")
        return ""
    except Exception as e:
        log(event="diagnosis_live_error", errorType=type(e).__name__, error=str(e)[:300])
        return ""


def extract_error_message_from_markup(html: Optional[str]) -> str:
    """Raw-markup diagnosis for saved page source. Never raises."""
    if not html:
        return ""
    try:
        for idx, pattern in enumerate(MARKUP_PATTERNS, start=1):
            texts = _clean([m.group(1) for m in pattern.finditer(html)])
            if texts:
                message = "; ".join(texts)
                log(event="diagnosis_markup_found", pattern=idx, message=message)
                return message
    except Exception as e:
        log(event="diagnosis_markup_error", errorType=type(e).__name__, error=str(e)[:300])
        return ""
    return ""


def diagnose(session: Optional[InteractiveSession], html: Optional[str] = None) -> str:
    """Live session first, then raw markup (given, or read from the session)."""
    message = ""
    if session is not None:
        message = extract_error_message(session)
    if message:
        return message
    if html is None and session is not None:
        try:
            html = session.page_source()
        except Exception as e:
            log(event="diagnosis_source_unavailable", error=str(e)[:200])
            html = None
    return extract_error_message_from_markup(html)


def find_reference_number(html: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Detects the remote "unable to issue" page.
    Returns (is_unable_page, reference number or None).
    """
    source = html or ""
    if UNABLE_PHRASE not in source.lower():
        return False, None
    m = REFERENCE_RE.search(source)
    if m:
        return True, m.group(1)
    # Markup may split the phrase from the digits; walk text nodes instead
    try:
        soup = BeautifulSoup(source, "lxml")
        for node in soup.find_all(string=re.compile("reference number", re.IGNORECASE)):
            m = REFERENCE_RE.search(" ".join(str(node).split()))
            if m:
                return True, m.group(1)
        m = REFERENCE_RE.search(" ".join(soup.get_text(" ").split()))
        if m:
            return True, m.group(1)
    except Exception as e:
        log(event="reference_number_fallback_failed", error=str(e)[:200])
    return True, None
