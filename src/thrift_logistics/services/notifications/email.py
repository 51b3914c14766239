"""Transactional email sink.

Notifications are fire-and-forget: delivery failures are logged and never
propagate into the operation that triggered them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from functools import lru_cache

import httpx

from ...config import settings

logger = logging.getLogger(__name__)


def _money(amount: Decimal | float) -> str:
    return f"{settings.currency} {Decimal(str(amount)).quantize(Decimal('0.01'))}"


class EmailNotifier:
    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        sender: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_url = api_url or settings.email_api_url
        self.api_key = api_key if api_key is not None else settings.email_api_key
        self.sender = sender or settings.email_from
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, subject: str, html: str) -> bool:
        if not self.configured:
            logger.info(f"Email API not configured - skipping '{subject}' to {to}")
            return False
        try:
            with httpx.Client(timeout=httpx.Timeout(self.timeout, connect=5.0)) as client:
                response = client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"from": self.sender, "to": [to], "subject": subject, "html": html},
                )
                response.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            logger.warning(f"Failed to send email '{subject}' to {to}: {exc}")
            return False

    def rider_assigned(self, to: str, rider_name: str, order_number: str, address: str) -> bool:
        return self.send(
            to,
            f"New delivery assigned - Order {order_number}",
            f"<p>Hi {rider_name},</p><p>Order <b>{order_number}</b> has been assigned to you.</p>"
            f"<p>Deliver to: {address}</p>",
        )

    def payment_confirmation(self, to: str, order_number: str, amount: Decimal, fully_paid: bool) -> bool:
        status_line = (
            "Your order is now fully paid."
            if fully_paid
            else "The remaining balance will be charged on your selected payday."
        )
        return self.send(
            to,
            f"Payment received - Order {order_number}",
            f"<p>We received {_money(amount)} for order <b>{order_number}</b>.</p><p>{status_line}</p>",
        )

    def payment_failure(self, to: str, order_number: str, amount: Decimal, reason: str) -> bool:
        return self.send(
            to,
            f"Payment failed - Order {order_number}",
            f"<p>We could not charge {_money(amount)} for order <b>{order_number}</b>.</p>"
            f"<p>Reason: {reason}</p><p>Please update your payment method and try again.</p>",
        )

    def payday_reminder(self, to: str, order_number: str, amount: Decimal, payday: datetime) -> bool:
        return self.send(
            to,
            f"Upcoming Payday Flex charge - Order {order_number}",
            f"<p>Your second installment of {_money(amount)} for order <b>{order_number}</b> "
            f"will be charged on {payday:%A, %d %B %Y}.</p>",
        )

    def installment_overdue(self, to: str, order_number: str, amount: Decimal) -> bool:
        return self.send(
            to,
            f"Payment overdue - Order {order_number}",
            f"<p>The second installment of {_money(amount)} for order <b>{order_number}</b> is overdue.</p>"
            "<p>Please settle it to avoid cancellation of your order.</p>",
        )


@lru_cache()
def get_notifier() -> EmailNotifier:
    return EmailNotifier()
