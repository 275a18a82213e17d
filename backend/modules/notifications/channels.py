"""
Notification delivery channels.

Maintenance events arrive from the event bus; each is logged and, when
NOTIFICATION_WEBHOOK_URL is set, posted to the configured webhook. The
webhook fires in a background thread so the publisher never waits on it.
"""

import logging
import threading

import httpx

from core.events import MAINTENANCE_COMPLETED, MAINTENANCE_OVERDUE, MAINTENANCE_UPCOMING
from core.interfaces.event_bus import Event

log = logging.getLogger("cartcare.notifications")

_TITLES = {
    MAINTENANCE_OVERDUE: "Overdue maintenance",
    MAINTENANCE_UPCOMING: "Upcoming maintenance",
    MAINTENANCE_COMPLETED: "Maintenance completed",
}


def format_alert(event: Event) -> tuple[str, str]:
    """Return (title, message) for a maintenance event."""
    data = event.data or {}
    title = _TITLES.get(event.event_type, event.event_type)

    if event.event_type == MAINTENANCE_COMPLETED:
        return title, f"Request #{data.get('request_id')} for cart {data.get('cart_id')} was completed"

    lines = [
        f"#{r.get('id')} cart {r.get('cart_id')} ({r.get('category')}, {r.get('priority')}) "
        f"scheduled {r.get('scheduled_date')}"
        for r in data.get("requests", [])
    ]
    header = f"{data.get('count', len(lines))} request(s)"
    if event.event_type == MAINTENANCE_UPCOMING and data.get("window_days"):
        header += f" due within {data['window_days']} day(s)"
    return f"{title}: {header}", "\n".join(lines)


def webhook_body(wtype: str, event: Event, title: str, message: str) -> dict:
    if wtype == "discord":
        return {"embeds": [{"title": title, "description": message, "footer": {"text": "CartCare"}}]}
    if wtype == "slack":
        return {"blocks": [
            {"type": "header", "text": {"type": "plain_text", "text": title}},
            {"type": "section", "text": {"type": "mrkdwn", "text": message or title}},
        ]}
    return {
        "event": event.event_type,
        "title": title,
        "message": message,
        "data": event.data,
        "occurred_at": event.occurred_at.isoformat(),
    }


def send_webhook(url: str, wtype: str, event: Event, timeout: float = 10, background: bool = True) -> None:
    """POST the event to a webhook. Failures are logged, never raised."""
    title, message = format_alert(event)
    body = webhook_body(wtype, event, title, message)

    def _send():
        try:
            resp = httpx.post(url, json=body, timeout=timeout)
            resp.raise_for_status()
            log.debug(f"Webhook sent to {wtype} for {event.event_type}")
        except Exception as e:
            log.error(f"Webhook dispatch failed ({wtype}): {e}")

    if background:
        threading.Thread(target=_send, daemon=True).start()
    else:
        _send()


def on_maintenance_event(event: Event) -> None:
    """Event bus handler for maintenance.* events."""
    from core.config import settings

    title, message = format_alert(event)
    log.info(f"{title}" + (f"\n{message}" if message else ""))

    if settings.notification_webhook_url:
        send_webhook(
            settings.notification_webhook_url,
            settings.notification_webhook_type,
            event,
            timeout=settings.notification_timeout_seconds,
        )
