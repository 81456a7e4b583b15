import base64
import json
from unittest.mock import patch

from einbot.core.audit import PURPOSE_CONFIRMATION, PURPOSE_FAILURE
from einbot.core.capture import PRINT_OPTIONS, capture_page, render_pdf
from einbot.core.errors import UploadError
from tests.fakes import PDF, FakeSession, FakeStore, llc_case


def test_native_print_uses_fixed_a4_layout():
    session = FakeSession()
    data, strategy = render_pdf(session)

    assert (data, strategy) == (PDF, "native")
    options = session.actions("print_to_pdf")[0][1]
    assert options["paperWidth"] == 8.27 and options["paperHeight"] == 11.69
    assert options["marginTop"] == 0.39
    assert options == PRINT_OPTIONS


def test_client_side_fallback_when_native_print_fails():
    client = json.dumps({"success": True, "data": base64.b64encode(b"%PDF-client").decode()})
    session = FakeSession(pdf=None, client_pdf=client)

    data, strategy = render_pdf(session)
    assert (data, strategy) == (b"%PDF-client", "client")


def test_capture_uploads_under_deterministic_name():
    store = FakeStore()
    artifact, ok = capture_page(PURPOSE_CONFIRMATION, FakeSession(), llc_case(), store)

    assert ok is True
    assert artifact.name == "EntityProcess/a0X001/AcmeWidgetsLLC-ID-EINConfirmation.pdf"
    assert artifact.url == "https://blob.test/artifacts/" + artifact.name
    assert artifact.hidden is True
    assert store.puts[0][2] == "application/pdf"


def test_both_strategies_failing_returns_not_ok():
    session = FakeSession(pdf=None, client_pdf=json.dumps({"success": False, "error": "blocked"}))
    store = FakeStore()

    artifact, ok = capture_page(PURPOSE_FAILURE, session, llc_case(), store)
    assert (artifact, ok) == (None, False)
    assert store.puts == []


@patch("einbot.core.capture.upload_with_retry")
def test_upload_exhaustion_returns_not_ok(mock_upload):
    mock_upload.side_effect = UploadError("x.pdf", 5, "offline")
    artifact, ok = capture_page(PURPOSE_CONFIRMATION, FakeSession(), llc_case(), FakeStore())
    assert (artifact, ok) == (None, False)


@patch("einbot.core.capture.diagnose")
def test_failure_capture_logs_page_error(mock_diagnose):
    mock_diagnose.return_value = "Name is required"
    with patch("einbot.core.capture.log") as mock_log:
        capture_page(PURPOSE_FAILURE, FakeSession(), llc_case(), FakeStore())
    first = mock_log.call_args_list[0].kwargs
    assert first["event"] == "capture_failure_page"
    assert first["pageError"] == "Name is required"
