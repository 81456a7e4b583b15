from fastapi import APIRouter, Depends, HTTPException
from einbot.api.auth import require_admin
from einbot.store.run_repo import load_run
from einbot.store.redis_conn import get_redis
import einbot.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/run/{record_id}")
def get_run_snapshot(record_id: str, _=Depends(require_admin)):
    """Run state plus whether a live session currently holds the record lock."""
    s = load_run(record_id)
    if s is None:
        raise HTTPException(status_code=404, detail="run not found")

    lock_ttl_ms = -2
    try:
        lock_ttl_ms = int(get_redis().pttl(f"lock:run:{record_id}"))
    except Exception:
        pass

    duration_ms = 0
    if s.startedAtMs and s.finishedAtMs:
        duration_ms = max(0, int(s.finishedAtMs) - int(s.startedAtMs))

    return {
        "recordId": s.recordId,
        "status": s.status,
        "outcome": s.outcome or "",
        "einNumber": s.einNumber,
        "referenceNumber": s.referenceNumber,
        "errorMessage": s.errorMessage,
        "artifactUrl": s.artifactUrl,
        "jobId": s.jobId,
        "attempts": int(s.attempts or 0),
        "durationMs": duration_ms,
        "locked": lock_ttl_ms > 0,
        "lockTtlMs": max(lock_ttl_ms, 0),
    }


@router.get("/metrics")
def get_metrics(_=Depends(require_admin)):
    """
    Observability snapshot backed by Redis counters.
    """
    return metrics.snapshot()
