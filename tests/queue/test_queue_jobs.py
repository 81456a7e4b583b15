from unittest.mock import MagicMock, patch

import pytest

from einbot.core.errors import RunInProgress
from einbot.core.models import WorkflowResult
from einbot.queue.jobs import run_workflow_job, send_notification_job

PAYLOAD = {
    "entityProcessId": "a0X001",
    "legalName": "Acme Widgets LLC",
    "responsibleParty": {"firstName": "Jane", "lastName": "Doe", "ssnOrItinOrEin": "123456789"},
    "physicalAddress": [{"street": "100 Main St", "city": "Miami", "state": "FL", "zipCode": "33101"}],
}


@patch("einbot.queue.jobs.get_current_job")
@patch("einbot.queue.jobs.run_with_lock")
def test_run_job_runs_under_lock_with_job_id(mock_run, mock_job):
    mock_job.return_value = MagicMock(id="job-7")
    mock_run.return_value = WorkflowResult(True, "12-3456789", None, "success")

    out = run_workflow_job(PAYLOAD)

    assert out["status"] == "success"
    case = mock_run.call_args.args[0]
    assert case.record_id == "a0X001"
    assert case.entity_type == "Limited Liability Company (LLC)"
    assert mock_run.call_args.kwargs["job_id"] == "job-7"


@patch("einbot.queue.jobs.update_run")
@patch("einbot.queue.jobs.get_current_job", return_value=None)
@patch("einbot.queue.jobs.run_with_lock")
def test_invalid_payload_marks_run_failed(mock_run, mock_job, mock_update):
    out = run_workflow_job(dict(PAYLOAD, formType="W-9"))

    assert out["status"] == "fail"
    assert any("formType" in p for p in out["problems"])
    mock_run.assert_not_called()
    assert mock_update.call_args.kwargs["status"] == "fail"


@patch("einbot.queue.jobs.get_current_job", return_value=None)
@patch("einbot.queue.jobs.run_with_lock")
def test_duplicate_job_is_skipped(mock_run, mock_job):
    mock_run.side_effect = RunInProgress("busy")
    assert run_workflow_job(PAYLOAD)["status"] == "skipped"


@patch("einbot.queue.jobs.log")
@patch("einbot.queue.jobs.CrmClient")
def test_notification_job_calls_client(mock_crm_cls, mock_log):
    crm = mock_crm_cls.return_value
    crm.update_status.return_value = True

    assert send_notification_job("update_status", {"record_id": "r1", "status": "success"}) is True
    crm.update_status.assert_called_once_with(record_id="r1", status="success")
    assert mock_log.call_args_list[0].kwargs["event"] == "notify_job_start"


@patch("einbot.queue.jobs.log")
@patch("einbot.queue.jobs.CrmClient")
def test_rejected_notification_raises_for_rq_retry(mock_crm_cls, mock_log):
    mock_crm_cls.return_value.notify_milestone.return_value = False

    with pytest.raises(RuntimeError):
        send_notification_job("notify_milestone", {"record_id": "r1", "url": "u", "entity_name": "A",
                                                   "purpose": "ID-EINLetter"})


def test_unknown_notification_kind_is_rejected():
    with pytest.raises(ValueError):
        send_notification_job("delete_everything", {})
