"""
Workflow orchestrator
---------------------
run_workflow(case, cancel) -> WorkflowResult. Never raises.

Order per run:
1) audit record from the case (missing fields logged, not rejected)
2) system-of-record authentication (failure ends the run before any session)
3) form completion -> Outcome
4) milestones for captured artifacts
5) terminal handling: success or failure (failure page capture, diagnosed message)
6) audit persisted exactly once, then the status notification
7) cleanup: session logs uploaded, session released (forced close as fallback)

Everything after the terminal status is known is best-effort and cannot change
the WorkflowResult.
"""
from __future__ import annotations

import json
import threading
import time
import traceback
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from einbot.callback.client import (
    LETTER_FAILURE_MESSAGE,
    STATUS_FAIL,
    STATUS_SUCCESS,
    CrmClient,
)
from einbot.callback.dispatch import Notifier
from einbot.core.audit import (
    PURPOSE_CONFIRMATION,
    PURPOSE_FAILURE,
    audit_blob_name,
    build_audit_record,
    log_blob_name,
)
from einbot.core.capture import capture_page
from einbot.core.diagnosis import diagnose
from einbot.core.form_filler import FormCompletion
from einbot.core.models import (
    STATUS_FAIL as AUDIT_FAIL,
    STATUS_SUCCESS as AUDIT_SUCCESS,
    Artifact,
    AuditRecord,
    CaseRecord,
    Outcome,
    RecoverableFailure,
    Success,
    UnexpectedFailure,
    WorkflowResult,
)
from einbot.observability.logging import log
from einbot.session.base import InteractiveSession
from einbot.session.playwright_session import open_session
from einbot.store.blob_store import BlobStore
from einbot.store.retry import upload_with_retry
import einbot.observability.metrics as metrics

UNKNOWN_FAILURE = "Unknown failure"


@dataclass
class _Run:
    case: CaseRecord
    audit: AuditRecord
    store: object
    crm: CrmClient
    notifier: Notifier
    cancel: Optional[threading.Event] = None
    session: Optional[InteractiveSession] = None
    artifacts: Dict[str, Artifact] = field(default_factory=dict)
    audit_persisted: bool = False


def _now_ms() -> int:
    return int(time.time() * 1000)


def _persist_audit(run: _Run) -> None:
    """Writes the whole audit record once per run. Failures are logged, never raised."""
    if run.audit_persisted:
        return
    run.audit_persisted = True
    name = audit_blob_name(run.case.record_id, run.case.entity_name)
    try:
        data = json.dumps(run.audit.snapshot(), ensure_ascii=False, default=str).encode("utf-8")
        upload_with_retry(run.store, data, name, "application/json", hidden=True, cancel=run.cancel)
        log(event="audit_persisted", recordId=run.case.record_id, status=run.audit.status, target=name)
    except Exception as e:
        log(event="audit_persist_failed", recordId=run.case.record_id, status=run.audit.status,
            target=name, errorType=type(e).__name__, error=str(e)[:300])


def _announce(run: _Run, purpose: str, artifact: Optional[Artifact]) -> None:
    if artifact is None or not artifact.url:
        return
    try:
        run.notifier.milestone(run.case.record_id, artifact.url, run.case.entity_name, purpose, hidden=artifact.hidden)
    except Exception as e:
        log(event="milestone_dispatch_failed", recordId=run.case.record_id, purpose=purpose, error=str(e)[:300])


def _on_success(run: _Run, outcome: Success) -> WorkflowResult:
    run.audit.set("response_status", AUDIT_SUCCESS)
    run.audit.set("einNumber", outcome.identifier)
    _persist_audit(run)

    if outcome.letter_url:
        run.notifier.status(run.case.record_id, STATUS_SUCCESS, identifier=outcome.identifier)
    else:
        run.notifier.status(run.case.record_id, STATUS_SUCCESS, identifier=outcome.identifier,
                            message=LETTER_FAILURE_MESSAGE)

    confirmation = outcome.artifact or run.artifacts.get(PURPOSE_CONFIRMATION)
    url = outcome.letter_url or (confirmation.url if confirmation else None)
    return WorkflowResult(success=True, message=outcome.identifier, artifact_url=url, outcome="success")


def _failure_message(run: _Run, outcome) -> str:
    if isinstance(outcome, RecoverableFailure):
        return (
            outcome.detail
            or run.audit.get("error_message")
            or f"Application refused, reference number {outcome.code}"
        )
    detail = outcome.detail
    if not detail and run.session is not None:
        detail = diagnose(run.session)
    return detail or str(outcome.error) or UNKNOWN_FAILURE


def _on_failure(run: _Run, outcome, capture: bool = True) -> WorkflowResult:
    kind = "recoverable" if isinstance(outcome, RecoverableFailure) else "unexpected"
    message = _failure_message(run, outcome)

    run.audit.set("response_status", AUDIT_FAIL)
    run.audit.set("error_message", message)
    if isinstance(outcome, UnexpectedFailure):
        err = outcome.error
        run.audit.set("exception", f"{type(err).__name__}: {err}")
        run.audit.set("traceback", "".join(traceback.format_exception(type(err), err, err.__traceback__)))

    failure_url = None
    if capture and run.session is not None:
        try:
            artifact, ok = capture_page(PURPOSE_FAILURE, run.session, run.case, run.store, run.cancel)
            if ok and artifact is not None:
                run.artifacts[PURPOSE_FAILURE] = artifact
                failure_url = artifact.url
                _announce(run, PURPOSE_FAILURE, artifact)
        except Exception as e:
            log(event="failure_capture_error", recordId=run.case.record_id, errorType=type(e).__name__,
                error=str(e)[:300])

    _persist_audit(run)
    run.notifier.status(run.case.record_id, STATUS_FAIL, error_code=outcome.code, message=message)

    log(event="workflow_failed", recordId=run.case.record_id, outcome=kind, code=outcome.code, message=message[:300])
    return WorkflowResult(success=False, message=message, artifact_url=failure_url, outcome=kind, code=outcome.code)


def _cleanup(run: _Run) -> None:
    session = run.session
    if session is None:
        return
    try:
        lines = session.console_logs()
        if lines:
            data = "\n".join(lines).encode("utf-8")
            upload_with_retry(run.store, data, log_blob_name(run.case.record_id), "text/plain", hidden=True)
    except Exception as e:
        log(event="session_log_upload_failed", recordId=run.case.record_id, errorType=type(e).__name__,
            error=str(e)[:300])
    try:
        session.quit()
        log(event="session_released", recordId=run.case.record_id)
    except Exception as e:
        log(event="session_quit_failed", recordId=run.case.record_id, errorType=type(e).__name__,
            error=str(e)[:300])
        try:
            session.force_close()
        except Exception as e2:
            log(event="session_force_close_failed", recordId=run.case.record_id, error=str(e2)[:300])


def _execute(run: _Run, session_factory: Callable[[], InteractiveSession]) -> WorkflowResult:
    try:
        run.crm.authenticate()
    except Exception as e:
        log(event="workflow_auth_failed", recordId=run.case.record_id, errorType=type(e).__name__, error=str(e)[:300])
        return _on_failure(run, UnexpectedFailure(error=e, detail=f"System of record authentication failed: {e}",
                                                  code="auth"), capture=False)

    outcome: Outcome
    try:
        run.session = session_factory()
        flow = FormCompletion(run.session, run.case, run.audit, run.store, run.cancel)
        outcome = flow.run()
        run.artifacts.update(flow.artifacts)
    except Exception as e:
        outcome = UnexpectedFailure(error=e)

    for purpose, artifact in list(run.artifacts.items()):
        _announce(run, purpose, artifact)

    if isinstance(outcome, Success):
        return _on_success(run, outcome)
    return _on_failure(run, outcome)


def run_workflow(
    case: CaseRecord,
    cancel: Optional[threading.Event] = None,
    *,
    session_factory: Optional[Callable[[], InteractiveSession]] = None,
    store=None,
    crm: Optional[CrmClient] = None,
    notify_mode: Optional[str] = None,
) -> WorkflowResult:
    t0 = _now_ms()
    metrics.record_run_started()
    crm = crm or CrmClient()
    run = _Run(
        case=case,
        audit=build_audit_record(case),
        store=store or BlobStore(),
        crm=crm,
        notifier=Notifier(crm, notify_mode, cancel),
        cancel=cancel,
    )
    log(event="workflow_start", recordId=case.record_id, entityType=case.entity_type)

    try:
        result = _execute(run, session_factory or open_session)
    except Exception as e:
        # last line of defence; the handlers above do not raise
        log(event="workflow_guard_tripped", recordId=case.record_id, errorType=type(e).__name__, error=str(e)[:300])
        result = WorkflowResult(success=False, message=str(e) or UNKNOWN_FAILURE, outcome="unexpected", code="500")
    finally:
        _cleanup(run)

    latency = _now_ms() - t0
    metrics.record_run_finished(case.record_id, result.outcome, latency)
    log(event="workflow_finished", recordId=case.record_id, success=result.success, outcome=result.outcome,
        latencyMs=latency)
    return result
