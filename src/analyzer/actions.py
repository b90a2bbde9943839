"""Notification actions fired by alert rules.

Every action runs inside its own failure boundary: an exception from one
channel is logged and swallowed so that the remaining actions, the
remaining rules and the evaluation result are unaffected.

Channels
────────
  log      — writes the alert through ``logging`` at a severity-matched level
  webhook  — POSTs the alert JSON via httpx to absolute http(s) targets;
             relative routes are only logged (served by the API layer)
  email    — delegated to a registered handler, otherwise logged as queued
  chat     — delegated to a registered handler, otherwise logged as queued
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Callable

import httpx

from src.contracts.alert import Alert, AlertAction
from src.contracts.enums import ActionType, AlertSeverity

log = logging.getLogger(__name__)

Handler = Callable[[AlertAction, Alert], None]

WEBHOOK_TIMEOUT_SEC = 5.0
DELIVERY_HISTORY = 1000

_LEVELS: dict[AlertSeverity, int] = {
    AlertSeverity.INFO: logging.INFO,
    AlertSeverity.WARNING: logging.WARNING,
    AlertSeverity.ERROR: logging.ERROR,
    AlertSeverity.CRITICAL: logging.CRITICAL,
}


class _Blank(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render(action: AlertAction, alert: Alert) -> str:
    """Apply the action template (``str.format`` fields from the alert) or the default line."""
    if action.template:
        values = _Blank(alert.to_dict())
        values["node_ids"] = ", ".join(alert.node_ids)
        return action.template.format_map(values)
    return f"{alert.severity.value.upper()}: {alert.title} - {alert.message}"


class ActionDispatcher:
    """Routes each AlertAction to a channel handler."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        history: int = DELIVERY_HISTORY,
    ) -> None:
        self._client = client
        self._handlers: dict[ActionType, Handler] = {
            ActionType.LOG: self._log,
            ActionType.WEBHOOK: self._webhook,
            ActionType.EMAIL: self._queued,
            ActionType.CHAT: self._queued,
        }
        # (action type, alert id), newest last
        self.delivered: deque[tuple[str, str]] = deque(maxlen=history)
        self.failed: deque[tuple[str, str]] = deque(maxlen=history)

    def register_handler(self, action_type: ActionType | str, handler: Handler) -> None:
        self._handlers[ActionType(action_type)] = handler

    def execute(self, actions: list[AlertAction], alert: Alert) -> int:
        """Run every action; returns the number that succeeded."""
        ok = 0
        for action in actions:
            try:
                self._handlers[action.type](action, alert)
            except Exception:
                log.exception(
                    "Alert action %s → %s failed for %s",
                    action.type.value, action.target, alert.id,
                )
                self.failed.append((action.type.value, alert.id))
                continue
            self.delivered.append((action.type.value, alert.id))
            ok += 1
        return ok

    # ── channels ─────────────────────────────────────────────────────

    def _log(self, action: AlertAction, alert: Alert) -> None:
        log.log(_LEVELS.get(alert.severity, logging.WARNING), "[ALERT] %s", render(action, alert))

    def _webhook(self, action: AlertAction, alert: Alert) -> None:
        target = action.target
        if not target.startswith(("http://", "https://")):
            log.info("[WEBHOOK] %s ← %s (%s)", target, alert.id, alert.title)
            return
        payload: dict[str, Any] = alert.to_dict()
        if action.template:
            payload["text"] = render(action, alert)
        if self._client is not None:
            response = self._client.post(target, json=payload, timeout=WEBHOOK_TIMEOUT_SEC)
        else:
            response = httpx.post(target, json=payload, timeout=WEBHOOK_TIMEOUT_SEC)
        response.raise_for_status()
        log.info("[WEBHOOK] POST %s → %d (%s)", target, response.status_code, alert.id)

    def _queued(self, action: AlertAction, alert: Alert) -> None:
        log.info(
            "[%s] queued for %s: %s",
            action.type.value.upper(), action.target, render(action, alert),
        )
