"""Webhook topics and the inbound event envelope."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class WebhookTopic(str, Enum):
    """Topics this app subscribes to, in Shopify's GraphQL enum spelling."""

    APP_UNINSTALLED = "APP_UNINSTALLED"
    INVENTORY_LEVELS_UPDATE = "INVENTORY_LEVELS_UPDATE"
    PRODUCTS_CREATE = "PRODUCTS_CREATE"
    PRODUCTS_DELETE = "PRODUCTS_DELETE"
    CUSTOMERS_DATA_REQUEST = "CUSTOMERS_DATA_REQUEST"
    CUSTOMERS_REDACT = "CUSTOMERS_REDACT"
    SHOP_REDACT = "SHOP_REDACT"


def normalize_topic(raw: str | None) -> str:
    """Map the X-Shopify-Topic header form to the enum form.

    "inventory_levels/update" -> "INVENTORY_LEVELS_UPDATE". Values already in
    enum form pass through.
    """
    if not raw:
        return ""
    return raw.strip().strip("/").replace("/", "_").upper()


@dataclass
class InboundWebhookEvent:
    """One webhook delivery. Built per request, consumed once."""

    topic: str
    shop: str
    raw_payload: Any = None  # raw body text/bytes, an already-decoded value, or None
    webhook_id: str = ""
