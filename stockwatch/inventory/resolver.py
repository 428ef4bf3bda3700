"""SKU resolution via the Shopify GraphQL Admin API.

Inventory webhooks only carry the inventory item id; the SKU operators
configure lives on the product variant. One GraphQL query maps one to the
other. Any failure means "cannot resolve" and is never raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from stockwatch.config import settings
from stockwatch.retry import retry_with_backoff

logger = logging.getLogger(__name__)

_GID_PREFIX = "gid://shopify/InventoryItem/"

INVENTORY_ITEM_SKU_QUERY = """
query ($id: ID!) {
  inventoryItem(id: $id) {
    id
    variant {
      sku
    }
  }
}
"""


def to_inventory_item_gid(inventory_item_id: str) -> str:
    """Webhooks send the numeric id; the Admin API wants a global id."""
    if inventory_item_id.startswith("gid://"):
        return inventory_item_id
    return f"{_GID_PREFIX}{inventory_item_id}"


def extract_sku(result: Any) -> str | None:
    """Pull data.inventoryItem.variant.sku out of a GraphQL response, if every level is there."""
    node: Any = result
    for key in ("data", "inventoryItem", "variant", "sku"):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    if not isinstance(node, str) or not node.strip():
        return None
    return node.strip()


class SkuResolver:
    """Resolves inventory item ids to SKUs for one shop.

    Successful lookups are cached on the instance; the id -> SKU mapping
    doesn't change within a delivery. Pass `client` to reuse an
    httpx.AsyncClient (tests pass one with a MockTransport).
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        client: httpx.AsyncClient | None = None,
        api_version: str | None = None,
    ):
        self._shop = shop
        self._access_token = access_token
        self._client = client
        self._api_version = api_version or settings.shopify_api_version
        self._cache: dict[str, str] = {}

    @property
    def endpoint(self) -> str:
        return f"https://{self._shop}/admin/api/{self._api_version}/graphql.json"

    async def resolve(self, inventory_item_id: str) -> str | None:
        """Return the SKU for an inventory item, or None if it can't be resolved."""
        if inventory_item_id in self._cache:
            return self._cache[inventory_item_id]

        variables = {"id": to_inventory_item_gid(inventory_item_id)}
        try:
            result = await self._graphql_request(INVENTORY_ITEM_SKU_QUERY, variables)
        except httpx.HTTPError as e:
            logger.warning(
                "SKU lookup failed for inventory item %s on %s: %s",
                inventory_item_id,
                self._shop,
                type(e).__name__,
            )
            return None
        except ValueError:
            logger.warning(
                "SKU lookup for inventory item %s returned a non-JSON body",
                inventory_item_id,
            )
            return None

        if isinstance(result, dict) and result.get("errors"):
            logger.warning(
                "SKU lookup for inventory item %s returned GraphQL errors: %s",
                inventory_item_id,
                result["errors"],
            )

        sku = extract_sku(result)
        if sku is None:
            logger.info("No SKU found for inventory item %s", inventory_item_id)
            return None

        self._cache[inventory_item_id] = sku
        return sku

    async def _graphql_request(self, query: str, variables: dict) -> Any:
        request = retry_with_backoff(
            max_retries=settings.shopify_lookup_retries,
            base_delay=0.5,
            max_delay=2.0,
        )(self._post)
        return await request(query, variables)

    async def _post(self, query: str, variables: dict) -> Any:
        if self._client is not None:
            return await self._send(self._client, query, variables)
        async with httpx.AsyncClient(timeout=settings.shopify_lookup_timeout) as client:
            return await self._send(client, query, variables)

    async def _send(self, client: httpx.AsyncClient, query: str, variables: dict) -> Any:
        response = await client.post(
            self.endpoint,
            json={"query": query, "variables": variables},
            headers={
                "X-Shopify-Access-Token": self._access_token,
                "Content-Type": "application/json",
            },
        )
        response.raise_for_status()
        return response.json()
