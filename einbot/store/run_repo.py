import inspect
import json
import time
from typing import Optional

from einbot.observability.logging import log
from einbot.store.models import RunState
from einbot.store.redis_conn import get_redis

PREFIX = "run:"


def _key(record_id: str) -> str:
    return f"{PREFIX}{record_id}"


def now_ms() -> int:
    return int(time.time() * 1000)


def _filter_run_kwargs(data: dict) -> dict:
    """
    Drop unknown fields so RunState(**kwargs) never explodes
    """
    allowed = set(inspect.signature(RunState).parameters.keys())
    dropped = [k for k in data if k not in allowed]
    if dropped:
        try:
            log(event="run_state_fields_dropped", fields=dropped)
        except Exception:
            pass
    return {k: v for k, v in data.items() if k in allowed}


def load_run(record_id: str) -> Optional[RunState]:
    r = get_redis()
    raw = r.get(_key(record_id))
    if not raw:
        return None
    data = json.loads(raw)
    data = _filter_run_kwargs(data)
    data.setdefault("recordId", record_id)
    return RunState(**data)


def save_run(state: RunState) -> None:
    r = get_redis()
    r.set(_key(state.recordId), json.dumps(state.__dict__.copy()))


def update_run(record_id: str, **changes) -> RunState:
    """Load-modify-save; creates the record when missing."""
    state = load_run(record_id) or RunState(recordId=record_id)
    for k, v in changes.items():
        if hasattr(state, k):
            setattr(state, k, v)
    save_run(state)
    return state
