from rq import get_current_job

from einbot.api.mapper import map_request_to_case, validate_case
from einbot.api.schemas import EinRequest
from einbot.callback.client import CrmClient
from einbot.callback.dispatch import KIND_MILESTONE, KIND_STATUS
from einbot.core.errors import InputValidationError, RunInProgress
from einbot.core.runner import run_with_lock
from einbot.observability.logging import log
from einbot.store.run_repo import now_ms, update_run


def _job_id():
    job = get_current_job()
    return job.id if job is not None else None


def run_workflow_job(payload: dict) -> dict:
    """
    Background variant of POST /run-irs-ein. The run state carries the result;
    the return value is kept on the job for inspection.
    """
    job_id = _job_id()
    req = EinRequest.model_validate(payload or {})
    case = map_request_to_case(req)
    try:
        validate_case(case)
    except InputValidationError as e:
        log(event="run_job_invalid", recordId=case.record_id, jobId=job_id, problems=e.problems)
        if case.record_id:
            update_run(case.record_id, status="fail", outcome="", jobId=job_id,
                       errorMessage=str(e), finishedAtMs=now_ms())
        return {"status": "fail", "recordId": case.record_id, "problems": e.problems}

    log(event="run_job_start", recordId=case.record_id, jobId=job_id)
    try:
        result = run_with_lock(case, job_id=job_id)
    except RunInProgress:
        # Another live session owns the record; this job is a duplicate
        log(event="run_job_skipped_in_progress", recordId=case.record_id, jobId=job_id)
        return {"status": "skipped", "recordId": case.record_id}

    return {
        "status": "success" if result.success else "fail",
        "recordId": case.record_id,
        "message": result.message,
        "outcome": result.outcome,
    }


def send_notification_job(kind: str, kwargs: dict) -> bool:
    """
    One deferred system-of-record call. Raises on failure so RQ's Retry applies.
    """
    if kind not in (KIND_STATUS, KIND_MILESTONE):
        raise ValueError(f"unknown notification kind {kind!r}")

    record_id = (kwargs or {}).get("record_id")
    try:
        log(event="notify_job_start", kind=kind, recordId=record_id)
        ok = bool(getattr(CrmClient(), kind)(**(kwargs or {})))
        if not ok:
            raise RuntimeError(f"{kind} for {record_id} was not accepted")
        log(event="notify_job_sent", kind=kind, recordId=record_id)
        return True
    except Exception as e:
        log(event="notify_job_exception", kind=kind, recordId=record_id, error=str(e)[:300])
        raise
