from typing import Optional

from einbot.core.models import CaseRecord, WorkflowResult
from einbot.core.orchestrator import run_workflow
from einbot.observability.logging import log
from einbot.store.run_repo import load_run, now_ms, update_run
from einbot.utils.lock import record_lock


def _record(record_id: str, **changes) -> None:
    try:
        update_run(record_id, **changes)
    except Exception as e:
        log(event="run_state_write_failed", recordId=record_id, error=str(e)[:300])


def _previous_attempts(record_id: str) -> int:
    try:
        state = load_run(record_id)
    except Exception:
        return 0
    return int(state.attempts or 0) if state else 0


def run_with_lock(case: CaseRecord, job_id: Optional[str] = None, **workflow_kwargs) -> WorkflowResult:
    """
    Runs one workflow under the per-record lock and mirrors it into the run state.
    Raises RunInProgress when another run holds the record.
    """
    with record_lock(case.record_id):
        _record(case.record_id, status="running", outcome="", jobId=job_id, startedAtMs=now_ms(),
                attempts=_previous_attempts(case.record_id) + 1,
                finishedAtMs=0, errorMessage=None, einNumber=None, referenceNumber=None, artifactUrl=None)
        result = run_workflow(case, **workflow_kwargs)
        _record(
            case.record_id,
            status="success" if result.success else "fail",
            outcome=result.outcome,
            einNumber=result.message if result.success else None,
            referenceNumber=result.code if result.outcome == "recoverable" else None,
            errorMessage=None if result.success else result.message,
            artifactUrl=result.artifact_url,
            finishedAtMs=now_ms(),
        )
    return result
