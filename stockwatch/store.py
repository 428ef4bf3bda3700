"""Monitored-entity store: SKUs, alert recipients, the stock threshold, shop sessions.

The alerting pipeline only reads SKUs, recipients and the threshold; the admin
UI that writes them lives elsewhere. Shop sessions are read to authenticate
webhook deliveries and deleted when the app is uninstalled.

Two implementations share one interface:
- PostgresStore: psycopg async connections, one short-lived connection per call
- InMemoryStore: same contract, used for local runs and tests
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol, runtime_checkable

import psycopg
from psycopg.rows import dict_row

from stockwatch.config import settings

logger = logging.getLogger(__name__)

# The single global threshold row lives under this id.
THRESHOLD_ROW_ID = 1


@dataclass(frozen=True)
class ShopSession:
    """Offline access session for one shop."""

    shop: str
    access_token: str


@runtime_checkable
class MonitoredEntityStore(Protocol):
    """Read interface consumed by the webhook pipeline."""

    async def list_monitored_skus(self) -> set[str]:
        ...

    async def get_threshold(self) -> int | None:
        ...

    async def list_recipients(self) -> set[str]:
        ...

    async def get_session(self, shop: str) -> ShopSession | None:
        ...

    async def delete_sessions(self, shop: str) -> int:
        ...


# ── Postgres ──────────────────────────────────────────────────────────────


class PostgresStore:
    """Postgres-backed store."""

    def __init__(self, dsn: str | None = None):
        self._dsn = dsn or settings.database_url

    async def _connect(self) -> psycopg.AsyncConnection:
        return await psycopg.AsyncConnection.connect(
            self._dsn, autocommit=True, row_factory=dict_row
        )

    async def init_tables(self) -> None:
        """Create tables if they don't exist.  Idempotent."""
        async with await self._connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS monitored_skus (
                    id         SERIAL PRIMARY KEY,
                    sku        TEXT NOT NULL UNIQUE,
                    created_at TIMESTAMPTZ DEFAULT now()
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS alert_recipients (
                    id         SERIAL PRIMARY KEY,
                    email      TEXT NOT NULL UNIQUE,
                    created_at TIMESTAMPTZ DEFAULT now()
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS stock_threshold (
                    id        INT PRIMARY KEY,
                    min_stock INT NOT NULL
                )
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS shop_sessions (
                    id           TEXT PRIMARY KEY,
                    shop         TEXT NOT NULL,
                    access_token TEXT NOT NULL,
                    is_online    BOOLEAN DEFAULT false,
                    expires_at   TIMESTAMPTZ
                )
            """)
        logger.info("stockwatch tables initialized")

    async def list_monitored_skus(self) -> set[str]:
        async with await self._connect() as conn:
            cur = await conn.execute("SELECT sku FROM monitored_skus")
            rows = await cur.fetchall()
        return {row["sku"] for row in rows}

    async def get_threshold(self) -> int | None:
        async with await self._connect() as conn:
            cur = await conn.execute(
                "SELECT min_stock FROM stock_threshold WHERE id = %s",
                (THRESHOLD_ROW_ID,),
            )
            row = await cur.fetchone()
        return int(row["min_stock"]) if row else None

    async def list_recipients(self) -> set[str]:
        async with await self._connect() as conn:
            cur = await conn.execute("SELECT email FROM alert_recipients")
            rows = await cur.fetchall()
        return {row["email"] for row in rows}

    async def get_session(self, shop: str) -> ShopSession | None:
        """Return the offline session for a shop, or None if it has none."""
        async with await self._connect() as conn:
            cur = await conn.execute(
                """SELECT shop, access_token FROM shop_sessions
                   WHERE shop = %s AND is_online = false
                   LIMIT 1""",
                (shop,),
            )
            row = await cur.fetchone()
        if row is None:
            return None
        return ShopSession(shop=row["shop"], access_token=row["access_token"])

    async def delete_sessions(self, shop: str) -> int:
        """Delete every session row for a shop. Returns the number removed."""
        async with await self._connect() as conn:
            cur = await conn.execute("DELETE FROM shop_sessions WHERE shop = %s", (shop,))
            deleted = cur.rowcount
        logger.info("Deleted %d session(s) for %s", deleted, shop)
        return deleted


# ── In-memory ─────────────────────────────────────────────────────────────


class InMemoryStore:
    """In-memory store with the same interface as PostgresStore.

    Keeps no history; every read returns a copy so callers can't mutate it.
    """

    def __init__(
        self,
        skus: Iterable[str] = (),
        recipients: Iterable[str] = (),
        threshold: int | None = None,
        sessions: Iterable[ShopSession] = (),
    ):
        self.skus: set[str] = set(skus)
        self.recipients: set[str] = set(recipients)
        self.threshold = threshold
        self.sessions: dict[str, ShopSession] = {s.shop: s for s in sessions}

    async def list_monitored_skus(self) -> set[str]:
        return set(self.skus)

    async def get_threshold(self) -> int | None:
        return self.threshold

    async def list_recipients(self) -> set[str]:
        return set(self.recipients)

    async def get_session(self, shop: str) -> ShopSession | None:
        return self.sessions.get(shop)

    async def delete_sessions(self, shop: str) -> int:
        removed = self.sessions.pop(shop, None)
        return 1 if removed else 0
