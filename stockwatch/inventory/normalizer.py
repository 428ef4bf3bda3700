"""Payload normalization for inventory webhooks.

Shopify delivers the body as raw JSON text, but callers (tests, replays, the
HTTP layer after a partial parse) may hand over an already-decoded value or
nothing at all. normalize_payload() accepts all three and never raises;
parse_inventory_change() then validates the structure with pydantic.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError, field_validator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryChangeRecord:
    """Normalized inventory_levels/update event."""

    inventory_item_id: str
    available: int


class InventoryLevelPayload(BaseModel):
    """Fields the pipeline needs from an inventory_levels/update body.

    Shopify also sends location_id and updated_at; they are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    inventory_item_id: Union[StrictInt, StrictStr]
    available: StrictInt

    @field_validator("inventory_item_id")
    @classmethod
    def _non_empty_id(cls, v: int | str) -> int | str:
        if isinstance(v, str) and not v.strip():
            raise ValueError("inventory_item_id is empty")
        return v


def normalize_payload(raw: Any) -> Any | None:
    """Decode a webhook body into a structured value.

    Text is decoded as strict JSON; structured values pass through unchanged.
    Returns None for missing or undecodable input.
    """
    if raw is None:
        return None

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Webhook payload is not valid UTF-8 (%d bytes)", len(raw))
            return None

    if isinstance(raw, str):
        try:
            return json.loads(raw, parse_constant=_reject_constant)
        except ValueError as e:
            logger.warning("Webhook payload is not valid JSON: %s", e)
            return None

    return raw


def _reject_constant(name: str) -> Any:
    # NaN/Infinity are Python extensions, not JSON.
    raise ValueError(f"non-standard JSON constant {name}")


def parse_inventory_change(payload: Any) -> InventoryChangeRecord | None:
    """Validate a normalized payload. Returns None if it is not a usable inventory change."""
    if not isinstance(payload, dict):
        logger.warning("Inventory payload is not an object: %s", type(payload).__name__)
        return None

    try:
        parsed = InventoryLevelPayload.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        logger.warning("Inventory payload failed validation (%s)", fields)
        return None

    return InventoryChangeRecord(
        inventory_item_id=str(parsed.inventory_item_id).strip(),
        available=parsed.available,
    )
