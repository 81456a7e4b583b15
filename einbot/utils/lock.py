import uuid
from contextlib import contextmanager
from typing import Optional

from einbot.core.errors import RunInProgress
from einbot.settings import settings
from einbot.store.redis_conn import get_redis

_RELEASE = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


@contextmanager
def record_lock(record_id: str, ttl_ms: Optional[int] = None):
    """
    Distributed lock: one live session per record id.
    Raises RunInProgress immediately when another run holds it.
    """
    r = get_redis()
    key = f"lock:run:{record_id}"
    token = uuid.uuid4().hex
    ttl = int(ttl_ms or settings.RUN_LOCK_TTL_MS)
    if not r.set(key, token, px=ttl, nx=True):
        raise RunInProgress(f"a run for {record_id} is already in progress")
    try:
        yield
    finally:
        # Release only if we own it
        try:
            r.eval(_RELEASE, 1, key, token)
        except Exception:
            pass
