"""
Notification dispatch
---------------------
Best-effort reporting to the system of record. Nothing here raises.

Modes (NOTIFY_MODE):
- sync:   send inline
- rq:     enqueue send_notification_job
- hybrid: send inline, enqueue one retry job only if the inline send failed

Cancellation is observed before each send.
"""
from __future__ import annotations

import threading
from typing import Optional

from rq import Retry

from einbot.callback.client import CrmClient
from einbot.observability.logging import log
from einbot.queue.rq_conn import get_queue
from einbot.settings import settings
import einbot.observability.metrics as metrics

KIND_STATUS = "update_status"
KIND_MILESTONE = "notify_milestone"

JOB_FUNC = "einbot.queue.jobs.send_notification_job"
JOB_RETRY_INTERVALS = [10, 30, 60]

MODES = ("sync", "rq", "hybrid")


def _enqueue(kind: str, kwargs: dict) -> bool:
    try:
        q = get_queue()
        job = q.enqueue(JOB_FUNC, kind, kwargs, retry=Retry(max=len(JOB_RETRY_INTERVALS), interval=JOB_RETRY_INTERVALS))
        log(event="notify_enqueued", kind=kind, recordId=kwargs.get("record_id"), jobId=getattr(job, "id", None))
        return True
    except Exception as e:
        log(event="notify_enqueue_failed", kind=kind, recordId=kwargs.get("record_id"),
            errorType=type(e).__name__, error=str(e)[:300])
        return False


class Notifier:
    def __init__(self, crm: CrmClient, mode: Optional[str] = None, cancel: Optional[threading.Event] = None):
        self.crm = crm
        mode = (mode or settings.NOTIFY_MODE or "hybrid").strip().lower()
        self.mode = mode if mode in MODES else "hybrid"
        self.cancel = cancel

    def _dispatch(self, kind: str, kwargs: dict) -> bool:
        record_id = kwargs.get("record_id")
        if self.cancel is not None and self.cancel.is_set():
            log(event="notify_skipped_cancelled", kind=kind, recordId=record_id)
            return False

        if self.mode == "rq":
            return _enqueue(kind, kwargs)

        try:
            ok = bool(getattr(self.crm, kind)(**kwargs))
        except Exception as e:
            log(event="notify_exception", kind=kind, recordId=record_id, errorType=type(e).__name__, error=str(e)[:300])
            ok = False

        if ok:
            log(event="notify_sent", kind=kind, recordId=record_id)
            return True

        metrics.increment(metrics.K_NOTIFY_FAILED)
        log(event="notify_failed", kind=kind, recordId=record_id, mode=self.mode)
        if self.mode == "hybrid":
            _enqueue(kind, kwargs)
        return False

    def status(self, record_id: str, status: str, identifier: Optional[str] = None,
               error_code: Optional[str] = None, message: Optional[str] = None) -> bool:
        return self._dispatch(KIND_STATUS, {
            "record_id": record_id,
            "status": status,
            "identifier": identifier,
            "error_code": error_code,
            "message": message,
        })

    def milestone(self, record_id: str, url: str, entity_name: Optional[str], purpose: str,
                  hidden: bool = True) -> bool:
        return self._dispatch(KIND_MILESTONE, {
            "record_id": record_id,
            "url": url,
            "entity_name": entity_name,
            "purpose": purpose,
            "hidden": hidden,
        })
