import json
from unittest.mock import patch

import einbot.observability.metrics as metrics
from einbot.store.models import RunState
from einbot.store.run_repo import load_run, save_run, update_run
from tests.fakes import FakeRedis


def test_round_trip_and_unknown_keys_dropped():
    r = FakeRedis()
    with patch("einbot.store.run_repo.get_redis", return_value=r):
        save_run(RunState(recordId="r1", status="running", attempts=2))
        raw = json.loads(r.get("run:r1"))
        raw["legacyField"] = "x"
        r.set("run:r1", json.dumps(raw))

        state = load_run("r1")

    assert state.status == "running"
    assert state.attempts == 2
    assert not hasattr(state, "legacyField")


def test_missing_run_is_none():
    with patch("einbot.store.run_repo.get_redis", return_value=FakeRedis()):
        assert load_run("nope") is None


def test_update_creates_then_modifies():
    r = FakeRedis()
    with patch("einbot.store.run_repo.get_redis", return_value=r):
        update_run("r2", status="queued", jobId="j1")
        state = update_run("r2", status="success", einNumber="12-3456789", notAField=True)

    assert state.status == "success"
    assert state.jobId == "j1"
    assert state.einNumber == "12-3456789"


def test_metrics_snapshot_counts_and_latency():
    r = FakeRedis()
    with patch("einbot.observability.metrics.get_redis", return_value=r):
        metrics.record_run_started()
        metrics.record_run_started()
        metrics.record_run_finished("r1", "success", 1000)
        metrics.record_run_finished("r2", "unexpected", 3000)
        metrics.increment(metrics.K_UPLOAD_RETRIES, 4)
        snap = metrics.snapshot()

    assert snap["runs_started"] == 2
    assert snap["runs_by_outcome"] == {"success": 1, "recoverable": 0, "unexpected": 1}
    assert snap["upload_retries"] == 4
    assert snap["p50_run_latency"] == 1.0
    assert snap["p95_run_latency"] == 3.0
    assert snap["recent_failed_runs"] == ["r2"]


def test_metrics_never_raise_without_redis():
    def broken():
        raise ConnectionError("redis down")

    with patch("einbot.observability.metrics.get_redis", side_effect=broken):
        metrics.increment(metrics.K_NOTIFY_FAILED)
        metrics.record_run_finished("r1", "success", 10)
