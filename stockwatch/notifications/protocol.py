"""Notifier protocol shared by the pipeline and its transports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Protocol, runtime_checkable

from stockwatch.inventory.evaluator import AlertDecision


@dataclass
class SendResult:
    """Result of dispatching one alert."""

    success: bool
    sent: int = 0  # messages handed to the transport (0 or 1)
    recipients: tuple[str, ...] = ()
    error: str = ""


@runtime_checkable
class AlertNotifier(Protocol):
    """Anything that can deliver an AlertDecision to a set of recipients."""

    async def dispatch(
        self, decision: AlertDecision, recipients: AbstractSet[str]
    ) -> SendResult:
        ...
