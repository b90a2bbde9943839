"""Tests for src.analyzer.actions — alert notification channels."""

from __future__ import annotations

import json
import logging
from dataclasses import replace

import httpx
import pytest

from src.analyzer.actions import DELIVERY_HISTORY, ActionDispatcher, render
from src.contracts.alert import Alert, AlertAction
from src.contracts.enums import ActionType, AlertSeverity, AlertType


@pytest.fixture
def alert():
    return Alert(
        id="alert_0001",
        rule_id="alert_critical_risk",
        type=AlertType.THRESHOLD_BREACH,
        severity=AlertSeverity.CRITICAL,
        title="Critical Risk Threshold: Alpha",
        message="Node Alpha has risk score 95% and health 40%",
        node_ids=["a", "b"],
        created_at="2026-02-26T10:00:00Z",
    )


def _client(status: int, seen: list):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((str(request.url), json.loads(request.content)))
        return httpx.Response(status)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestRender:
    def test_default_line(self, alert):
        text = render(AlertAction(ActionType.LOG, "system"), alert)
        assert text == "CRITICAL: Critical Risk Threshold: Alpha - Node Alpha has risk score 95% and health 40%"

    def test_template_fields(self, alert):
        action = AlertAction(ActionType.CHAT, "#ops", template="[{severity}] {title} ({node_ids})")
        assert render(action, alert) == "[critical] Critical Risk Threshold: Alpha (a, b)"

    def test_unknown_fields_left_verbatim(self, alert):
        action = AlertAction(ActionType.CHAT, "#ops", template="{rule_id} {nope}")
        assert render(action, alert) == "alert_critical_risk {nope}"


class TestLogChannel:
    def test_logs_at_severity_level(self, alert, caplog):
        with caplog.at_level(logging.INFO, logger="src.analyzer.actions"):
            ok = ActionDispatcher().execute([AlertAction(ActionType.LOG, "system")], alert)
        assert ok == 1
        rec = [r for r in caplog.records if "[ALERT]" in r.getMessage()]
        assert rec and rec[0].levelno == logging.CRITICAL


class TestWebhook:
    def test_relative_route_only_logged(self, alert, monkeypatch):
        def boom(*args, **kwargs):
            raise AssertionError("no HTTP call expected")

        monkeypatch.setattr(httpx, "post", boom)
        d = ActionDispatcher()
        assert d.execute([AlertAction(ActionType.WEBHOOK, "/api/alerts")], alert) == 1
        assert list(d.delivered) == [("webhook", "alert_0001")]

    def test_posts_alert_json(self, alert):
        seen: list = []
        d = ActionDispatcher(client=_client(200, seen))
        action = AlertAction(ActionType.WEBHOOK, "https://hooks.example.org/grid", template="{title}")
        assert d.execute([action], alert) == 1
        url, body = seen[0]
        assert url == "https://hooks.example.org/grid"
        assert body["id"] == "alert_0001"
        assert body["severity"] == "critical"
        assert body["text"] == "Critical Risk Threshold: Alpha"

    def test_http_error_recorded(self, alert):
        d = ActionDispatcher(client=_client(500, []))
        ok = d.execute(
            [
                AlertAction(ActionType.WEBHOOK, "http://hooks.example.org/x"),
                AlertAction(ActionType.LOG, "system"),
            ],
            alert,
        )
        assert ok == 1
        assert list(d.failed) == [("webhook", "alert_0001")]
        assert list(d.delivered) == [("log", "alert_0001")]

    def test_module_level_post_without_client(self, alert, monkeypatch):
        calls = []

        def fake_post(url, json=None, timeout=None):
            calls.append((url, timeout))
            return httpx.Response(202, request=httpx.Request("POST", url))

        monkeypatch.setattr(httpx, "post", fake_post)
        d = ActionDispatcher()
        assert d.execute([AlertAction(ActionType.WEBHOOK, "https://x.example.org/a")], alert) == 1
        assert calls == [("https://x.example.org/a", 5.0)]


class TestHandlers:
    def test_email_queued_by_default(self, alert):
        d = ActionDispatcher()
        assert d.execute([AlertAction(ActionType.EMAIL, "ops@example.org")], alert) == 1

    def test_register_handler(self, alert):
        got = []
        d = ActionDispatcher()
        d.register_handler("email", lambda action, a: got.append((action.target, a.id)))
        d.execute([AlertAction(ActionType.EMAIL, "ops@example.org")], alert)
        assert got == [("ops@example.org", "alert_0001")]


class TestDeliveryHistory:
    def test_default_bound(self):
        d = ActionDispatcher()
        assert d.delivered.maxlen == DELIVERY_HISTORY
        assert d.failed.maxlen == DELIVERY_HISTORY

    def test_keeps_only_newest(self, alert):
        d = ActionDispatcher(history=3)
        d.register_handler("chat", lambda action, a: None)
        d.register_handler("email", lambda action, a: 1 / 0)
        for i in range(5):
            a = replace(alert, id=f"alert_{i:04d}")
            d.execute(
                [AlertAction(ActionType.CHAT, "#ops"), AlertAction(ActionType.EMAIL, "ops@example.org")],
                a,
            )
        assert [i for _, i in d.delivered] == ["alert_0002", "alert_0003", "alert_0004"]
        assert [i for _, i in d.failed] == ["alert_0002", "alert_0003", "alert_0004"]
