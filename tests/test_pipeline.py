"""Tests for the inventory alert pipeline (normalize -> resolve -> evaluate -> notify)."""

from __future__ import annotations

import json
import logging
from email.errors import HeaderParseError
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stockwatch.inventory.evaluator import AlertDecision, SkipReason, Skipped
from stockwatch.inventory.pipeline import Failed, Notified, run_inventory_pipeline
from stockwatch.notifications.email import EmailNotifier
from stockwatch.notifications.protocol import SendResult


def _body(inventory_item_id=999, available=5) -> str:
    return json.dumps(
        {"inventory_item_id": inventory_item_id, "location_id": 1, "available": available}
    )


class TestScenarios:
    @pytest.mark.asyncio
    @patch("stockwatch.notifications.email.smtplib.SMTP")
    async def test_below_threshold_sends_one_email(self, mock_smtp, store, resolver):
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server
        notifier = EmailNotifier(smtp_host="smtp.test.com", smtp_from="alerts@test.com")

        outcome = await run_inventory_pipeline(
            _body(available=5), store=store, resolver=resolver, notifier=notifier
        )

        assert outcome == Notified(
            AlertDecision(sku="ABC123", available=5, threshold=10, should_notify=True),
            ("a@x.com", "b@x.com"),
        )
        server.send_message.assert_called_once()
        msg = server.send_message.call_args[0][0]
        assert "ABC123" in msg["Subject"]
        assert msg["To"] == "a@x.com, b@x.com"
        text = msg.get_payload()[0].get_payload(decode=True).decode()
        assert "ABC123" in text
        assert "dropped to 5" in text

    @pytest.mark.asyncio
    async def test_equal_to_threshold_sends_nothing(self, store, resolver, notifier):
        outcome = await run_inventory_pipeline(
            _body(available=10), store=store, resolver=resolver, notifier=notifier
        )
        assert isinstance(outcome, Skipped)
        assert outcome.reason is SkipReason.ABOVE_THRESHOLD
        notifier.dispatch.assert_not_awaited()
        store.list_recipients.assert_not_called()

    @pytest.mark.asyncio
    async def test_unresolved_sku_halts_before_store_reads(self, store, resolver, notifier):
        resolver.mapping = {}
        outcome = await run_inventory_pipeline(
            _body(), store=store, resolver=resolver, notifier=notifier
        )
        assert outcome == Skipped(SkipReason.UNRESOLVED_SKU, "999")
        assert resolver.calls == ["999"]
        store.list_monitored_skus.assert_not_called()
        store.get_threshold.assert_not_called()
        notifier.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_threshold_halts_after_monitored_check(
        self, make_store, resolver, notifier, caplog
    ):
        store = make_store(threshold=None)
        with caplog.at_level(logging.WARNING):
            outcome = await run_inventory_pipeline(
                _body(available=0), store=store, resolver=resolver, notifier=notifier
            )
        assert outcome == Skipped(SkipReason.NO_THRESHOLD, "ABC123")
        store.list_monitored_skus.assert_called_once()
        store.get_threshold.assert_called_once()
        store.list_recipients.assert_not_called()
        notifier.dispatch.assert_not_awaited()
        assert "No stock threshold configured" in caplog.text


class TestShortCircuits:
    @pytest.mark.asyncio
    async def test_malformed_json_stops_before_resolver(self, store, resolver, notifier):
        outcome = await run_inventory_pipeline(
            '{"inventory_item_id": 999', store=store, resolver=resolver, notifier=notifier
        )
        assert isinstance(outcome, Skipped)
        assert outcome.reason is SkipReason.INVALID_PAYLOAD
        assert resolver.calls == []
        store.list_monitored_skus.assert_not_called()

    @pytest.mark.asyncio
    async def test_none_payload(self, store, resolver, notifier):
        outcome = await run_inventory_pipeline(None, store=store, resolver=resolver, notifier=notifier)
        assert isinstance(outcome, Skipped)
        assert outcome.reason is SkipReason.INVALID_PAYLOAD
        assert resolver.calls == []

    @pytest.mark.asyncio
    async def test_non_numeric_available(self, store, resolver, notifier):
        outcome = await run_inventory_pipeline(
            _body(available="five"), store=store, resolver=resolver, notifier=notifier
        )
        assert isinstance(outcome, Skipped)
        assert outcome.reason is SkipReason.INVALID_PAYLOAD
        assert resolver.calls == []

    @pytest.mark.asyncio
    async def test_structured_payload_accepted(self, store, resolver, notifier):
        outcome = await run_inventory_pipeline(
            {"inventory_item_id": 999, "available": 1},
            store=store,
            resolver=resolver,
            notifier=notifier,
        )
        assert isinstance(outcome, Notified)

    @pytest.mark.asyncio
    async def test_unmonitored_sku_never_reads_threshold(self, store, resolver, notifier):
        resolver.mapping = {"999": "NOT-WATCHED"}
        outcome = await run_inventory_pipeline(
            _body(available=-50), store=store, resolver=resolver, notifier=notifier
        )
        assert outcome == Skipped(SkipReason.UNMONITORED_SKU, "NOT-WATCHED")
        store.get_threshold.assert_not_called()
        notifier.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_recipients_is_skip_not_error(self, make_store, resolver, notifier):
        store = make_store(recipients=())
        outcome = await run_inventory_pipeline(
            _body(available=1), store=store, resolver=resolver, notifier=notifier
        )
        assert outcome == Skipped(SkipReason.NO_RECIPIENTS, "ABC123")
        notifier.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_negative_available_alerts(self, store, resolver, notifier):
        outcome = await run_inventory_pipeline(
            _body(available=-2), store=store, resolver=resolver, notifier=notifier
        )
        assert isinstance(outcome, Notified)
        assert outcome.decision.available == -2


class TestFailures:
    @pytest.mark.asyncio
    async def test_transport_failure_is_failed_outcome(self, store, resolver):
        notifier = MagicMock()
        notifier.dispatch = AsyncMock(return_value=SendResult(success=False, error="SMTP error: boom"))
        outcome = await run_inventory_pipeline(
            _body(available=1), store=store, resolver=resolver, notifier=notifier
        )
        assert isinstance(outcome, Failed)
        assert outcome.cause == "SMTP error: boom"
        assert outcome.decision.sku == "ABC123"

    @pytest.mark.asyncio
    @patch("stockwatch.notifications.email.smtplib.SMTP")
    async def test_unserializable_message_is_failed_outcome(self, mock_smtp, store, resolver):
        server = MagicMock()
        server.send_message.side_effect = HeaderParseError("embedded header")
        mock_smtp.return_value.__enter__.return_value = server
        notifier = EmailNotifier(smtp_host="smtp.test.com", smtp_from="alerts@test.com")

        outcome = await run_inventory_pipeline(
            _body(available=1), store=store, resolver=resolver, notifier=notifier
        )

        assert isinstance(outcome, Failed)
        assert outcome.decision.sku == "ABC123"

    @pytest.mark.asyncio
    async def test_store_outage_propagates(self, store, resolver, notifier):
        store.list_monitored_skus = AsyncMock(side_effect=RuntimeError("db down"))
        with pytest.raises(RuntimeError):
            await run_inventory_pipeline(_body(), store=store, resolver=resolver, notifier=notifier)
