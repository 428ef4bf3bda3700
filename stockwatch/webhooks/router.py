"""Topic router: maps an authenticated webhook delivery to its side effect.

Response contract:
- 404 when the shop has no stored session (unknown or uninstalled)
- 404 "Unhandled webhook topic" for topics with no handler (never an exception)
- 200 {"success": true} for every handled topic, even when the inventory
  pipeline skipped or failed to deliver the alert
- 500 "Internal Server Error" for anything unexpected; details are logged only
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from stockwatch.inventory.evaluator import Skipped
from stockwatch.inventory.pipeline import (
    Failed,
    Notified,
    PipelineOutcome,
    Resolver,
    run_inventory_pipeline,
)
from stockwatch.inventory.resolver import SkuResolver
from stockwatch.notifications.protocol import AlertNotifier
from stockwatch.store import MonitoredEntityStore, ShopSession
from stockwatch.webhooks.topics import InboundWebhookEvent, WebhookTopic

logger = logging.getLogger(__name__)

ResolverFactory = Callable[[str, str], Resolver]
TopicHandler = Callable[[InboundWebhookEvent, ShopSession], Awaitable[Union[PipelineOutcome, None]]]

SUCCESS_BODY = {"success": True}
SHOP_NOT_FOUND = "Shop not found or uninstalled"
UNHANDLED_TOPIC = "Unhandled webhook topic"
SERVER_ERROR = "Internal Server Error"


@dataclass
class RouteResult:
    status_code: int
    body: Any
    outcome: PipelineOutcome | None = None


class WebhookRouter:
    """Routes webhook deliveries by topic."""

    def __init__(
        self,
        store: MonitoredEntityStore,
        notifier: AlertNotifier,
        resolver_factory: ResolverFactory = SkuResolver,
    ):
        self._store = store
        self._notifier = notifier
        self._resolver_factory = resolver_factory
        self._handlers: dict[str, TopicHandler] = {
            WebhookTopic.APP_UNINSTALLED.value: self._handle_uninstalled,
            WebhookTopic.INVENTORY_LEVELS_UPDATE.value: self._handle_inventory_update,
            WebhookTopic.PRODUCTS_CREATE.value: self._handle_product_event,
            WebhookTopic.PRODUCTS_DELETE.value: self._handle_product_event,
            WebhookTopic.CUSTOMERS_DATA_REQUEST.value: self._handle_compliance,
            WebhookTopic.CUSTOMERS_REDACT.value: self._handle_compliance,
            WebhookTopic.SHOP_REDACT.value: self._handle_compliance,
        }

    @property
    def topics(self) -> set[str]:
        return set(self._handlers)

    async def route(self, event: InboundWebhookEvent) -> RouteResult:
        """Authenticate the shop and run the topic's handler."""
        try:
            session = await self._store.get_session(event.shop) if event.shop else None
            if session is None:
                logger.warning("Webhook %s for unknown shop %r", event.topic, event.shop)
                return RouteResult(404, SHOP_NOT_FOUND)

            handler = self._handlers.get(event.topic)
            if handler is None:
                logger.info("Unhandled webhook topic %r from %s", event.topic, event.shop)
                return RouteResult(404, UNHANDLED_TOPIC)

            outcome = await handler(event, session)
            return RouteResult(200, SUCCESS_BODY, outcome)
        except Exception:
            logger.exception(
                "Error processing webhook %s from %s (id=%s)",
                event.topic,
                event.shop,
                event.webhook_id,
            )
            return RouteResult(500, SERVER_ERROR)

    # ── Topic handlers ────────────────────────────────────────────────────

    async def _handle_uninstalled(self, event: InboundWebhookEvent, session: ShopSession) -> None:
        deleted = await self._store.delete_sessions(event.shop)
        logger.info("App uninstalled from %s; %d session(s) removed", event.shop, deleted)

    async def _handle_inventory_update(
        self, event: InboundWebhookEvent, session: ShopSession
    ) -> PipelineOutcome:
        resolver = self._resolver_factory(session.shop, session.access_token)
        outcome = await run_inventory_pipeline(
            event.raw_payload,
            store=self._store,
            resolver=resolver,
            notifier=self._notifier,
        )
        _log_outcome(event, outcome)
        return outcome

    async def _handle_product_event(self, event: InboundWebhookEvent, session: ShopSession) -> None:
        logger.info("Product event %s from %s acknowledged", event.topic, event.shop)

    async def _handle_compliance(self, event: InboundWebhookEvent, session: ShopSession) -> None:
        # Only operator-entered SKUs and emails are stored; nothing customer-related to export or redact.
        logger.info("Compliance webhook %s from %s acknowledged", event.topic, event.shop)


def _log_outcome(event: InboundWebhookEvent, outcome: PipelineOutcome) -> None:
    if isinstance(outcome, Notified):
        logger.info(
            "Low-stock alert for %s sent to %d recipient(s) (webhook %s)",
            outcome.decision.sku,
            len(outcome.recipients),
            event.webhook_id,
        )
    elif isinstance(outcome, Failed):
        logger.error(
            "Low-stock alert for %s not delivered: %s (webhook %s)",
            outcome.decision.sku,
            outcome.cause,
            event.webhook_id,
        )
    elif isinstance(outcome, Skipped):
        logger.info(
            "Inventory webhook %s skipped: %s %s",
            event.webhook_id,
            outcome.reason.value,
            outcome.detail,
        )
