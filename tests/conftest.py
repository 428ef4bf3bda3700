"""Shared fixtures for the stockwatch test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from stockwatch.notifications.protocol import SendResult
from stockwatch.store import InMemoryStore, ShopSession

SHOP = "test-shop.myshopify.com"
TOKEN = "shpat_test_token"


def make_store(
    skus=("ABC123",),
    recipients=("a@x.com", "b@x.com"),
    threshold: int | None = 10,
    sessions=(ShopSession(shop=SHOP, access_token=TOKEN),),
) -> MagicMock:
    """InMemoryStore wrapped in a MagicMock so tests can assert which reads happened."""
    real = InMemoryStore(
        skus=skus, recipients=recipients, threshold=threshold, sessions=sessions
    )
    spy = MagicMock(wraps=real)
    spy.real = real
    return spy


class FakeResolver:
    """Resolver with a fixed id -> SKU table."""

    def __init__(self, mapping: dict[str, str] | None = None):
        self.mapping = mapping if mapping is not None else {"999": "ABC123"}
        self.calls: list[str] = []

    async def resolve(self, inventory_item_id: str) -> str | None:
        self.calls.append(inventory_item_id)
        return self.mapping.get(inventory_item_id)


@pytest.fixture(name="make_store")
def make_store_fixture():
    return make_store


@pytest.fixture
def store() -> MagicMock:
    return make_store()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def notifier() -> MagicMock:
    """Notifier whose dispatch() succeeds and echoes the recipients."""
    mock = MagicMock()

    async def _dispatch(decision, recipients):
        return SendResult(success=True, sent=1, recipients=tuple(sorted(recipients)))

    mock.dispatch = AsyncMock(side_effect=_dispatch)
    return mock
