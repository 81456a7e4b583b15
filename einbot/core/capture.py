"""
Artifact capture
----------------
capture_page(purpose, session, case, store) -> (Artifact | None, ok)

1) wait for a loaded page plus a settle delay
2) primary: native print-to-PDF with fixed A4 paper and margins
3) fallback: inject html2pdf.js and await its promise; any error here is final
4) upload through the retry policy under a deterministic name

A failed capture returns (None, False). Callers decide what that means; it never
ends a run on its own.
"""
from __future__ import annotations

import base64
import json
import threading
import time
from typing import Optional, Tuple

from einbot.core.audit import PURPOSE_FAILURE, artifact_name
from einbot.core.diagnosis import diagnose
from einbot.core.errors import RunCancelled
from einbot.core.models import Artifact, CaseRecord
from einbot.observability.logging import log
from einbot.session.base import InteractiveSession
from einbot.settings import settings
from einbot.store.retry import upload_with_retry

PDF_CONTENT_TYPE = "application/pdf"

PRINT_OPTIONS = {
    "landscape": False,
    "displayHeaderFooter": False,
    "printBackground": True,
    "preferCSSPageSize": True,
    "paperWidth": 8.27,
    "paperHeight": 11.69,
    "marginTop": 0.39,
    "marginBottom": 0.39,
    "marginLeft": 0.39,
    "marginRight": 0.39,
}

# Resolves to a JSON string {success, data} or {success: false, error}
HTML2PDF_SCRIPT = """() => new Promise((resolve) => {
    const run = () => {
        try {
            const opt = {
                margin: 10,
                filename: 'capture.pdf',
                image: {type: 'jpeg', quality: 0.98},
                html2canvas: {scale: 2, useCORS: true},
                jsPDF: {unit: 'mm', format: 'a4', orientation: 'portrait'}
            };
            html2pdf().from(document.body).set(opt).outputPdf('datauristring')
                .then((uri) => resolve(JSON.stringify({success: true, data: uri.split(',')[1]})))
                .catch((e) => resolve(JSON.stringify({success: false, error: String(e)})));
        } catch (e) {
            resolve(JSON.stringify({success: false, error: String(e)}));
        }
    };
    if (typeof html2pdf !== 'undefined') { run(); return; }
    const s = document.createElement('script');
    s.src = '%s';
    s.onload = run;
    s.onerror = () => resolve(JSON.stringify({success: false, error: 'html2pdf failed to load'}));
    document.head.appendChild(s);
})"""


class CaptureError(RuntimeError):
    pass


def _wait_loaded(session: InteractiveSession) -> None:
    try:
        session.wait_ready(timeout=float(settings.CAPTURE_READY_TIMEOUT_SEC))
    except Exception as e:
        # a slow page is still worth capturing
        log(event="capture_ready_timeout", error=str(e)[:200])
    time.sleep(float(settings.CAPTURE_SETTLE_SEC))


def _print_native(session: InteractiveSession) -> bytes:
    data = session.print_to_pdf(dict(PRINT_OPTIONS))
    if not data:
        raise CaptureError("native print returned no data")
    return data


def _print_client_side(session: InteractiveSession) -> bytes:
    raw = session.execute_async_script(
        HTML2PDF_SCRIPT % settings.HTML2PDF_URL,
        timeout=float(settings.CAPTURE_SCRIPT_TIMEOUT_SEC),
    )
    result = json.loads(raw) if isinstance(raw, str) else (raw or {})
    if not result.get("success"):
        raise CaptureError(f"client-side PDF failed: {result.get('error') or 'no result'}")
    data = base64.b64decode(result.get("data") or "")
    if not data:
        raise CaptureError("client-side PDF was empty")
    return data


def render_pdf(session: InteractiveSession) -> Tuple[bytes, str]:
    """Returns (pdf bytes, strategy). Raises when both strategies fail."""
    _wait_loaded(session)
    try:
        return _print_native(session), "native"
    except Exception as e:
        log(event="capture_native_failed", errorType=type(e).__name__, error=str(e)[:300])
    return _print_client_side(session), "client"


def capture_page(
    purpose: str,
    session: InteractiveSession,
    case: CaseRecord,
    store,
    cancel: Optional[threading.Event] = None,
) -> Tuple[Optional[Artifact], bool]:
    name = artifact_name(case.record_id, case.entity_name, purpose)
    if purpose == PURPOSE_FAILURE:
        try:
            log(event="capture_failure_page", recordId=case.record_id, pageError=diagnose(session))
        except Exception:
            pass

    try:
        data, strategy = render_pdf(session)
    except Exception as e:
        log(event="capture_failed", recordId=case.record_id, purpose=purpose,
            errorType=type(e).__name__, error=str(e)[:300])
        return None, False

    artifact = Artifact(name=name, data=data, content_type=PDF_CONTENT_TYPE, hidden=True)
    try:
        artifact.url = upload_with_retry(store, data, name, PDF_CONTENT_TYPE, hidden=True, cancel=cancel)
    except RunCancelled:
        raise
    except Exception as e:
        log(event="capture_upload_failed", recordId=case.record_id, purpose=purpose, target=name,
            errorType=type(e).__name__, error=str(e)[:300])
        return None, False

    log(event="capture_ok", recordId=case.record_id, purpose=purpose, strategy=strategy,
        target=name, bytes=len(data))
    return artifact, True
