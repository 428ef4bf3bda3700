"""Threshold evaluation: does this inventory change warrant an alert?

evaluate() is a pure function of its inputs. The store reads happen in the
pipeline so that each gate only reads what it needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Union

logger = logging.getLogger(__name__)


class SkipReason(str, Enum):
    """Why an inventory event ended without an alert."""

    INVALID_PAYLOAD = "invalid_payload"
    UNRESOLVED_SKU = "unresolved_sku"
    UNMONITORED_SKU = "unmonitored_sku"
    NO_THRESHOLD = "no_threshold"
    ABOVE_THRESHOLD = "above_threshold"
    NO_RECIPIENTS = "no_recipients"


@dataclass(frozen=True)
class Skipped:
    """Expected short-circuit. Not an error."""

    reason: SkipReason
    detail: str = ""


@dataclass(frozen=True)
class AlertDecision:
    sku: str
    available: int
    threshold: int
    should_notify: bool


def is_below_threshold(available: int, threshold: int) -> bool:
    """Strictly less than: stock equal to the threshold does not alert."""
    return available < threshold


def evaluate(
    sku: str,
    available: int,
    monitored_skus: AbstractSet[str],
    threshold: int | None,
) -> Union[AlertDecision, Skipped]:
    """Decide whether `sku` at `available` units needs an alert.

    Gates, in order: SKU must be monitored, a threshold must be configured,
    then `available < threshold`.
    """
    if sku not in monitored_skus:
        return Skipped(SkipReason.UNMONITORED_SKU, sku)

    if threshold is None:
        logger.warning(
            "No stock threshold configured; skipping evaluation for SKU %s", sku
        )
        return Skipped(SkipReason.NO_THRESHOLD, sku)

    return AlertDecision(
        sku=sku,
        available=available,
        threshold=threshold,
        should_notify=is_below_threshold(available, threshold),
    )
