import json
from unittest.mock import MagicMock, patch

import pytest

from einbot.callback.client import LETTER_FAILURE_MESSAGE
from einbot.core.errors import CrmError
from einbot.core.orchestrator import run_workflow
from tests.fakes import FakeSession, FakeStore, issued_session, llc_case

UNABLE_PAGE = (
    "<html><body><h2>We are unable to provide you with an EIN.</h2>"
    "<p>Reference number 101</p></body></html>"
)


@pytest.fixture
def crm():
    c = MagicMock()
    c.update_status.return_value = True
    c.notify_milestone.return_value = True
    return c


def _audit_blobs(store):
    return [(name, data) for name, data, _, _ in store.puts if name.endswith("_data.json")]


def _run(session, crm, store=None, case=None):
    store = store or FakeStore()
    with patch("einbot.core.orchestrator.metrics"):
        result = run_workflow(
            case or llc_case(),
            session_factory=lambda: session,
            store=store,
            crm=crm,
            notify_mode="sync",
        )
    return result, store


def test_success_run_reports_identifier_and_cleans_up(crm):
    session = issued_session()
    result, store = _run(session, crm)

    assert result.success is True
    assert result.message == "12-3456789"
    assert result.outcome == "success"
    assert result.artifact_url.endswith("-ID-EINLetter.pdf")

    crm.update_status.assert_called_once_with(
        record_id="a0X001", status="success", identifier="12-3456789", error_code=None, message=None)
    purposes = sorted(c.kwargs["purpose"] for c in crm.notify_milestone.call_args_list)
    assert purposes == ["ID-EINConfirmation", "ID-EINLetter"]

    audits = _audit_blobs(store)
    assert len(audits) == 1
    assert json.loads(audits[0][1])["response_status"] == "success"
    assert session.quit_calls == 1
    assert any(n.startswith("logs/a0X001/browser_") for n in store.names())


def test_type2_failure_notifies_reference_number(crm):
    session = FakeSession(source=UNABLE_PAGE)
    result, store = _run(session, crm)

    assert result.success is False
    assert result.outcome == "recoverable"
    assert result.code == "101"
    assert result.artifact_url.endswith("-ID-EINSubmissionFailure.pdf")

    crm.update_status.assert_called_once()
    kwargs = crm.update_status.call_args.kwargs
    assert kwargs["status"] == "fail"
    assert kwargs["error_code"] == "101"

    audits = _audit_blobs(store)
    assert len(audits) == 1
    snapshot = json.loads(audits[0][1])
    assert snapshot["response_status"] == "fail"
    assert snapshot["irs_reference_number"] == "101"
    assert session.quit_calls == 1


def test_type1_failure_persists_audit_once_with_exception(crm):
    session = FakeSession(missing={"//input[@type='submit' and @name='submit' and @value='Begin Application >>']"})
    result, store = _run(session, crm)

    assert result.success is False
    assert result.outcome == "unexpected"
    assert result.code == "500"
    assert "Page load timeout" in result.message

    audits = _audit_blobs(store)
    assert len(audits) == 1
    snapshot = json.loads(audits[0][1])
    assert snapshot["response_status"] == "fail"
    assert snapshot["exception"].startswith("AutomationError")
    assert "Traceback" in snapshot["traceback"]
    assert crm.update_status.call_args.kwargs["error_code"] == "500"
    assert session.quit_calls == 1


SUBMIT_BUTTON = "//input[@type='submit' and @value='Submit']"


@pytest.mark.parametrize("session_kwargs, capture_error, status", [
    pytest.param({"broken": {"limited"}}, None, "fail", id="entity-category"),
    pytest.param({"broken": {"physicalAddressZipCode"}}, None, "fail", id="physical-zip"),
    pytest.param({"missing": {SUBMIT_BUTTON}}, None, "fail", id="submit"),
    pytest.param({"letter": None}, None, "success", id="letter-download"),
    pytest.param({}, RuntimeError("print failed"), "fail", id="confirmation-capture"),
])
def test_fault_at_any_step_releases_session_once_and_audits_once(crm, session_kwargs, capture_error, status):
    session = issued_session(**session_kwargs)
    if capture_error is None:
        result, store = _run(session, crm)
    else:
        with patch("einbot.core.form_filler.capture_page", side_effect=capture_error):
            result, store = _run(session, crm)

    assert result.success is (status == "success")
    assert session.quit_calls == 1
    assert session.force_close_calls == 0
    audits = _audit_blobs(store)
    assert len(audits) == 1
    assert json.loads(audits[0][1])["response_status"] == status
    assert crm.update_status.call_count == 1
    assert crm.update_status.call_args.kwargs["status"] == status


def test_failure_message_prefers_page_error_text(crm):
    source = (
        "<div class=\"validation_error_text\">Error(s) has occurred:</div>"
        "<ul><li class=\"validation_error_text\">ZIP code does not match the state</li></ul>"
    )
    session = FakeSession(source=source, broken={"physicalAddressZipCode"})
    result, _ = _run(session, crm)

    assert result.success is False
    assert result.message == "ZIP code does not match the state"
    assert crm.update_status.call_args.kwargs["message"] == "ZIP code does not match the state"


def test_letter_failure_sends_letter_message(crm):
    session = issued_session(letter=None)
    result, _ = _run(session, crm)

    assert result.success is True
    crm.update_status.assert_called_once()
    assert crm.update_status.call_args.kwargs["message"] == LETTER_FAILURE_MESSAGE
    # the confirmation page stands in for the missing letter
    assert result.artifact_url.endswith("-ID-EINConfirmation.pdf")


def test_auth_failure_never_opens_a_session(crm):
    crm.authenticate.side_effect = CrmError(401, "bad credentials")
    factory = MagicMock()
    store = FakeStore()
    with patch("einbot.core.orchestrator.metrics"):
        result = run_workflow(llc_case(), session_factory=factory, store=store, crm=crm, notify_mode="sync")

    assert result.success is False
    assert result.code == "auth"
    factory.assert_not_called()
    assert len(_audit_blobs(store)) == 1


def test_session_start_failure_is_unexpected(crm):
    def factory():
        raise RuntimeError("browser did not start")

    store = FakeStore()
    with patch("einbot.core.orchestrator.metrics"):
        result = run_workflow(llc_case(), session_factory=factory, store=store, crm=crm, notify_mode="sync")

    assert result.success is False
    assert result.outcome == "unexpected"
    assert "browser did not start" in result.message
    assert len(_audit_blobs(store)) == 1


def test_quit_failure_falls_back_to_force_close(crm):
    session = issued_session(quit_error=RuntimeError("driver gone"))
    result, _ = _run(session, crm)

    assert result.success is True
    assert session.quit_calls == 1
    assert session.force_close_calls == 1


def test_notification_failure_does_not_change_result(crm):
    crm.update_status.side_effect = RuntimeError("crm down")
    session = issued_session()
    result, _ = _run(session, crm)

    assert result.success is True
    assert result.message == "12-3456789"


def test_audit_store_outage_is_not_fatal(crm):
    session = issued_session()
    store = FakeStore()
    with patch("einbot.core.orchestrator.upload_with_retry") as mock_upload:
        mock_upload.side_effect = RuntimeError("exhausted")
        with patch("einbot.core.orchestrator.metrics"):
            result = run_workflow(llc_case(), session_factory=lambda: session, store=store, crm=crm,
                                  notify_mode="sync")

    assert result.success is True
    assert session.quit_calls == 1


@patch("einbot.core.orchestrator.log")
def test_finished_event_is_logged(mock_log, crm):
    session = issued_session()
    _run(session, crm)
    events = [c.kwargs["event"] for c in mock_log.call_args_list]
    assert events[0] == "workflow_start"
    assert events[-1] == "workflow_finished"
    assert events.count("audit_persisted") == 1
