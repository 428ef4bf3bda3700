"""Low-stock email alerts over SMTP.

Uses standard SMTP with STARTTLS. Credentials come from settings
(SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, SMTP_FROM).

One alert is one message: every recipient is on the same To: line and the
message goes out in a single SMTP transaction. Delivery is best-effort;
failures are logged and reported in the SendResult, never retried.

Security: Password comes from the environment, never logged.
"""

from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from email.errors import MessageError
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import AbstractSet

from stockwatch.config import settings
from stockwatch.inventory.evaluator import AlertDecision
from stockwatch.notifications.protocol import SendResult

logger = logging.getLogger(__name__)

_ALERT_COLOR = "#cc0000"


def alert_subject(decision: AlertDecision) -> str:
    # SKUs are merchant-entered; a line break would end the header.
    sku = " ".join(decision.sku.split())
    return f"[LOW STOCK] {sku}: {decision.available} left"


def alert_text(decision: AlertDecision) -> str:
    return (
        f"Stock for SKU {decision.sku} has dropped to {decision.available} "
        f"unit(s), below the minimum of {decision.threshold}.\n\n"
        "Restock soon to avoid running out."
    )


def alert_html(decision: AlertDecision) -> str:
    sku = html.escape(decision.sku)
    return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px;">
            <div style="border-left: 4px solid {_ALERT_COLOR}; padding: 12px;">
                <h2 style="margin: 0 0 8px 0; color: {_ALERT_COLOR};">Low stock: {sku}</h2>
                <p style="margin: 0; color: #333;">
                    Stock for SKU <strong>{sku}</strong> has dropped to
                    <strong>{decision.available}</strong> unit(s), below the minimum
                    of {decision.threshold}.
                </p>
            </div>
            <p style="font-size: 11px; color: #999; margin-top: 16px;">
                stockwatch inventory alerts
            </p>
        </div>
        """


class EmailNotifier:
    """Sends alert emails via SMTP."""

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_from: str | None = None,
    ):
        self._host = smtp_host or settings.smtp_host
        self._port = smtp_port or settings.smtp_port
        self._user = smtp_user or settings.smtp_user
        self._password = smtp_password or settings.smtp_password
        self._from = smtp_from or settings.smtp_from or self._user

    @property
    def is_configured(self) -> bool:
        return bool(self._host and self._from)

    def format_message(
        self, decision: AlertDecision, recipients: list[str]
    ) -> MIMEMultipart:
        """Build the multipart (plain + HTML) alert message."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = alert_subject(decision)
        msg["From"] = self._from
        msg["To"] = ", ".join(recipients)
        msg.attach(MIMEText(alert_text(decision), "plain"))
        msg.attach(MIMEText(alert_html(decision), "html"))
        return msg

    async def dispatch(
        self, decision: AlertDecision, recipients: AbstractSet[str]
    ) -> SendResult:
        """Send one alert to every recipient. Empty recipient set is a no-op."""
        if not decision.should_notify:
            return SendResult(success=True)

        to = sorted(recipients)
        if not to:
            logger.info("No alert recipients configured; low-stock alert for %s not sent", decision.sku)
            return SendResult(success=True)

        if not self.is_configured:
            logger.error(
                "Email not configured (missing SMTP_HOST/SMTP_FROM); alert for %s dropped",
                decision.sku,
            )
            return SendResult(
                success=False,
                recipients=tuple(to),
                error="Email not configured",
            )

        try:
            msg = self.format_message(decision, to)
            await asyncio.to_thread(self._send, msg)
        except (smtplib.SMTPException, OSError, MessageError) as e:
            logger.error(
                "Failed to send low-stock alert for %s to %d recipient(s): %s",
                decision.sku,
                len(to),
                e,
            )
            return SendResult(
                success=False,
                recipients=tuple(to),
                error=f"SMTP error: {e}",
            )

        logger.info(
            "Low-stock alert sent for %s (available=%d, threshold=%d) to %d recipient(s)",
            decision.sku,
            decision.available,
            decision.threshold,
            len(to),
        )
        return SendResult(success=True, sent=1, recipients=tuple(to))

    def _send(self, msg: MIMEMultipart) -> None:
        """Blocking SMTP send with TLS. Runs on a worker thread."""
        with smtplib.SMTP(self._host, self._port, timeout=settings.smtp_timeout) as server:
            server.starttls()
            if self._user and self._password:
                server.login(self._user, self._password)
            server.send_message(msg)
