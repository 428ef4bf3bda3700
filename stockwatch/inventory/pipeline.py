"""Inventory alert pipeline: normalize -> resolve -> evaluate -> notify.

Every stage awaits the previous one. Expected short-circuits come back as
Skipped, a delivered alert as Notified, a transport failure as Failed.
Anything else (a store outage, a bug) propagates to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Union

from stockwatch.inventory.evaluator import (
    AlertDecision,
    SkipReason,
    Skipped,
    evaluate,
)
from stockwatch.inventory.normalizer import normalize_payload, parse_inventory_change
from stockwatch.notifications.protocol import AlertNotifier
from stockwatch.store import MonitoredEntityStore

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    async def resolve(self, inventory_item_id: str) -> str | None:
        ...


@dataclass(frozen=True)
class Notified:
    decision: AlertDecision
    recipients: tuple[str, ...]


@dataclass(frozen=True)
class Failed:
    decision: AlertDecision
    cause: str


PipelineOutcome = Union[Skipped, Notified, Failed]


async def run_inventory_pipeline(
    raw_payload: Any,
    *,
    store: MonitoredEntityStore,
    resolver: Resolver,
    notifier: AlertNotifier,
) -> PipelineOutcome:
    """Process one inventory_levels/update payload end to end."""
    payload = normalize_payload(raw_payload)
    if payload is None:
        return Skipped(SkipReason.INVALID_PAYLOAD, "undecodable body")

    change = parse_inventory_change(payload)
    if change is None:
        return Skipped(SkipReason.INVALID_PAYLOAD, "missing or invalid fields")

    sku = await resolver.resolve(change.inventory_item_id)
    if sku is None:
        return Skipped(SkipReason.UNRESOLVED_SKU, change.inventory_item_id)

    monitored = await store.list_monitored_skus()
    if sku not in monitored:
        return Skipped(SkipReason.UNMONITORED_SKU, sku)

    threshold = await store.get_threshold()
    result = evaluate(sku, change.available, monitored, threshold)
    if isinstance(result, Skipped):
        return result
    if not result.should_notify:
        return Skipped(
            SkipReason.ABOVE_THRESHOLD,
            f"{sku}: {result.available} >= {result.threshold}",
        )

    recipients = await store.list_recipients()
    if not recipients:
        logger.info("SKU %s is below threshold but no recipients are configured", sku)
        return Skipped(SkipReason.NO_RECIPIENTS, sku)

    sent = await notifier.dispatch(result, recipients)
    if not sent.success:
        return Failed(result, sent.error)
    return Notified(result, sent.recipients)
