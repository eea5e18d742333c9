# Overview: Fire-and-forget "sale completed" notifications to the tenant's sales webhook.

from __future__ import annotations

import httpx
from flask import current_app

from ..errors import NotificationError
from ..money import format_currency
from ..time_utils import to_utc_z, utcnow


DEFAULT_TIMEOUT_SECONDS = 3.0


class WebhookSink:
    """Posts JSON events to one webhook URL. One attempt, bounded timeout."""

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def send(self, event: dict) -> None:
        try:
            response = httpx.post(self.url, json=event, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(
                "Sales webhook delivery failed",
                details={"reason": str(exc) or exc.__class__.__name__},
            ) from exc


def sink_for(config):
    """Build the default sink for a tenant, or None when no webhook is set."""
    if not config.sales_webhook_url:
        return None
    timeout = current_app.config.get("WEBHOOK_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    return WebhookSink(config.sales_webhook_url, timeout=timeout)


def build_sale_event(sale, sold_by: str, currency_code: str) -> dict:
    return {
        "event": "sale.completed",
        "invoice_number": sale.invoice_number,
        "sale_id": sale.id,
        "amount_cents": sale.total_cents,
        "amount_display": format_currency(sale.total_cents, currency_code),
        "currency": currency_code,
        "sold_by": sold_by,
        "occurred_at": to_utc_z(sale.created_at or utcnow()),
    }


def notify_sale_completed(sale, sold_by: str, config, sink=None) -> bool:
    """
    Dispatch the sale summary once. Never raises.

    Returns True when the sink accepted the event.
    """
    if sink is None:
        sink = sink_for(config)
    if sink is None:
        current_app.logger.warning("No sales webhook configured for organization %s", config.org_id)
        return False

    event = build_sale_event(sale, sold_by, config.currency_code)
    try:
        sink.send(event)
    except NotificationError as exc:
        current_app.logger.warning(
            "Sales webhook failed for invoice %s: %s %s",
            sale.invoice_number,
            exc.message,
            exc.details,
        )
        return False
    except Exception:
        current_app.logger.exception("Failed to dispatch sales webhook for invoice %s", sale.invoice_number)
        return False
    return True
