from unittest.mock import MagicMock

import pytest

from einbot.settings import settings


@pytest.fixture(autouse=True)
def fast_interactions(monkeypatch):
    # Waits that only matter against a real browser
    monkeypatch.setattr("einbot.session.interactions.SETTLE_SEC", 0)
    monkeypatch.setattr("einbot.session.interactions.AFTER_CLICK_SEC", 0)
    monkeypatch.setattr("einbot.core.form_filler.SUB_TYPE_CONTINUE_GAP_SEC", 0)
    monkeypatch.setattr("einbot.core.form_filler.FISCAL_MONTH_DELAY_MS", 0)
    monkeypatch.setattr(settings, "CLICK_RETRY_DELAY_SEC", 0.0)
    monkeypatch.setattr(settings, "CAPTURE_SETTLE_SEC", 0.0)
    yield


@pytest.fixture(autouse=True)
def offline_metrics(monkeypatch):
    monkeypatch.setattr("einbot.observability.metrics.get_redis", lambda: MagicMock())
    yield
