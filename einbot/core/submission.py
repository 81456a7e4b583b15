"""
Final submission
----------------
Submits the completed application and classifies the result page:

- identifier present          -> Success (letter download attempted)
- "unable to provide" page    -> RecoverableFailure(code=reference number)
  (a refusal page without a reference number is unexpected)
- anything else               -> UnexpectedFailure(code="500")

Submission is fully automatic. A letter that cannot be downloaded keeps the run
successful; the failure page is captured instead and `letter_error` is set on
the audit record.
"""
from __future__ import annotations

import re
import threading
from typing import Dict, Optional

from bs4 import BeautifulSoup

from einbot.core.audit import PURPOSE_FAILURE, PURPOSE_LETTER, artifact_name
from einbot.core.capture import PDF_CONTENT_TYPE, capture_page
from einbot.core.diagnosis import diagnose, find_reference_number
from einbot.core.errors import AutomationError, RunCancelled
from einbot.core.models import (
    Artifact,
    AuditRecord,
    CaseRecord,
    Outcome,
    RecoverableFailure,
    Success,
    UnexpectedFailure,
)
from einbot.observability.logging import log
from einbot.session.base import ElementNotReady, InteractiveSession, by_css, by_xpath
from einbot.session.interactions import click_button
from einbot.settings import settings
from einbot.store.retry import upload_with_retry

SUBMIT = by_xpath("//input[@type='submit' and @value='Submit']")
IDENTIFIER_CELL = by_css("td[align='left'] > b")
LETTER_LINK = by_xpath("//a[contains(text(), 'EIN Confirmation Letter') and contains(@href, '.pdf')]")
LETTER_TEXT = "EIN Confirmation Letter"

IDENTIFIER_RE = re.compile(r"^\d{2}-\d{7}$")


def read_identifier(session: InteractiveSession) -> Optional[str]:
    try:
        text = (session.text_of(IDENTIFIER_CELL, timeout=10) or "").strip()
        if IDENTIFIER_RE.match(text):
            return text
    except ElementNotReady as e:
        log(event="identifier_primary_failed", error=str(e)[:200])

    soup = BeautifulSoup(session.page_source() or "", "lxml")
    for node in soup.select("td > b"):
        text = node.get_text(strip=True)
        if "-" in text and IDENTIFIER_RE.match(text):
            log(event="identifier_fallback_found")
            return text
    return None


def find_letter_url(session: InteractiveSession) -> Optional[str]:
    href = None
    try:
        href = session.attribute_of(LETTER_LINK, "href", timeout=10)
    except ElementNotReady as e:
        log(event="letter_link_primary_failed", error=str(e)[:200])
    if not href:
        soup = BeautifulSoup(session.page_source() or "", "lxml")
        for a in soup.find_all("a", href=True):
            if LETTER_TEXT in a.get_text() and ".pdf" in a["href"]:
                href = a["href"]
                break
    if not href:
        return None
    if href.startswith("/"):
        href = settings.FORM_BASE_URL.rstrip("/") + href
    return href


def download_letter(
    session: InteractiveSession,
    case: CaseRecord,
    store,
    cancel: Optional[threading.Event] = None,
) -> Artifact:
    url = find_letter_url(session)
    if not url:
        raise AutomationError("Letter link not found", "no 'EIN Confirmation Letter' PDF link on the result page")
    data, content_type = session.download(url)
    if not (content_type or "").lower().startswith(PDF_CONTENT_TYPE):
        raise AutomationError("Letter download is not a PDF", f"content type {content_type!r}")
    name = artifact_name(case.record_id, case.entity_name, PURPOSE_LETTER)
    artifact = Artifact(name=name, data=data, content_type=PDF_CONTENT_TYPE, hidden=True)
    artifact.url = upload_with_retry(store, data, name, PDF_CONTENT_TYPE, hidden=True, cancel=cancel)
    return artifact


def detect_refusal(session: InteractiveSession, case: CaseRecord, audit: AuditRecord,
                   html: Optional[str] = None) -> Optional[RecoverableFailure]:
    """
    Classifies the current page as a refusal. Only a refusal that carries a
    reference number counts; anything else is left to the caller.
    """
    if html is None:
        try:
            html = session.page_source()
        except Exception as e:
            log(event="refusal_check_failed", recordId=case.record_id, error=str(e)[:200])
            return None
    refused, reference = find_reference_number(html)
    if not (refused and reference):
        if refused:
            log(event="refusal_without_reference", recordId=case.record_id)
        return None
    detail = diagnose(session, html)
    audit.set("irs_reference_number", reference)
    audit.set("error_message", detail or f"Remote refused with reference number {reference}")
    log(event="submission_refused", recordId=case.record_id, referenceNumber=reference)
    return RecoverableFailure(code=reference, detail=detail)


def submit_application(
    session: InteractiveSession,
    case: CaseRecord,
    audit: AuditRecord,
    store,
    cancel: Optional[threading.Event] = None,
    artifacts: Optional[Dict[str, Artifact]] = None,
) -> Outcome:
    if artifacts is None:
        artifacts = {}
    click_button(session, SUBMIT, "Submit")

    identifier = read_identifier(session)
    if not identifier:
        html = session.page_source()
        refusal = detect_refusal(session, case, audit, html)
        if refusal is not None:
            return refusal
        detail = diagnose(session, html)
        log(event="submission_no_identifier", recordId=case.record_id, pageError=detail)
        return UnexpectedFailure(
            error=AutomationError("Identifier not found on result page", detail or None),
            detail=detail,
            code="500",
        )

    audit.set("einNumber", identifier)
    log(event="submission_issued", recordId=case.record_id)

    try:
        letter = download_letter(session, case, store, cancel)
    except RunCancelled:
        raise
    except Exception as e:
        log(event="letter_download_failed", recordId=case.record_id, errorType=type(e).__name__, error=str(e)[:300])
        audit.set("letter_error", str(e)[:500])
        failure, ok = capture_page(PURPOSE_FAILURE, session, case, store, cancel)
        if ok and failure is not None:
            artifacts[PURPOSE_FAILURE] = failure
        return Success(identifier=identifier, artifact=None, letter_url=None)

    artifacts[PURPOSE_LETTER] = letter
    return Success(identifier=identifier, artifact=None, letter_url=letter.url)
