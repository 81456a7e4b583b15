"""
Run metrics
-----------
Redis counters and latency samples for workflow runs, consumed by /admin/metrics.
Every write is best-effort: a missing or unreachable Redis never affects a run.
"""
from __future__ import annotations
import time
from typing import List, Tuple
from einbot.store.redis_conn import get_redis

K_RUNS_STARTED = "metrics:runs:started"
K_RUNS_OUTCOME = "metrics:runs:outcome:"          # + success/recoverable/unexpected
K_RUN_LAT = "metrics:runs:latencies"              # LPUSH ms
K_UPLOAD_RETRIES = "metrics:upload:retries"
K_UPLOAD_EXHAUSTED = "metrics:upload:exhausted"
K_NOTIFY_FAILED = "metrics:notify:failed"
K_RECENT_FAILED = "metrics:runs:failed_recent"    # LPUSH recordId

OUTCOMES = ("success", "recoverable", "unexpected")

_MAX_SAMPLES = 500

def _percentile(data: List[float], p: float) -> float:
    """Nearest-rank percentile on sorted data."""
    if not data:
        return 0.0
    d = sorted(data)
    k = max(1, int(round(p * len(d))))
    return float(d[k - 1])

def increment(key: str, n: int = 1) -> None:
    try:
        get_redis().incr(key, n)
    except Exception:
        pass

def record_run_started() -> None:
    increment(K_RUNS_STARTED)

def record_run_finished(record_id: str, outcome: str, latency_ms: int) -> None:
    increment(K_RUNS_OUTCOME + (outcome or "unexpected"))
    try:
        r = get_redis()
        r.lpush(K_RUN_LAT, int(latency_ms))
        r.ltrim(K_RUN_LAT, 0, _MAX_SAMPLES - 1)
        if outcome != "success" and record_id:
            r.lpush(K_RECENT_FAILED, record_id)
            r.ltrim(K_RECENT_FAILED, 0, 49)
    except Exception:
        pass

def _read_latencies() -> List[float]:
    r = get_redis()
    out: List[float] = []
    for x in r.lrange(K_RUN_LAT, 0, _MAX_SAMPLES - 1) or []:
        try:
            out.append(float(x) / 1000.0)
        except (TypeError, ValueError):
            continue
    return out

def _p50_p95(latencies_s: List[float]) -> Tuple[float, float]:
    if not latencies_s:
        return 0.0, 0.0
    return _percentile(latencies_s, 0.50), _percentile(latencies_s, 0.95)

def snapshot() -> dict:
    r = get_redis()
    p50, p95 = _p50_p95(_read_latencies())
    return {
        "runs_started": int(r.get(K_RUNS_STARTED) or 0),
        "runs_by_outcome": {o: int(r.get(K_RUNS_OUTCOME + o) or 0) for o in OUTCOMES},
        "upload_retries": int(r.get(K_UPLOAD_RETRIES) or 0),
        "upload_exhausted": int(r.get(K_UPLOAD_EXHAUSTED) or 0),
        "notify_failed": int(r.get(K_NOTIFY_FAILED) or 0),
        "p50_run_latency": round(p50, 3),
        "p95_run_latency": round(p95, 3),
        "recent_failed_runs": [str(x) for x in (r.lrange(K_RECENT_FAILED, 0, 19) or [])],
        "snapshot_at": int(time.time()),
    }
