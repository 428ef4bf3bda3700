"""FastAPI application factory for stockwatch."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from stockwatch import __version__
from stockwatch.config import settings
from stockwatch.inventory.resolver import SkuResolver
from stockwatch.notifications.email import EmailNotifier
from stockwatch.notifications.protocol import AlertNotifier
from stockwatch.store import MonitoredEntityStore, PostgresStore
from stockwatch.webhooks import idempotency
from stockwatch.webhooks.handlers import register_webhook_routes
from stockwatch.webhooks.router import ResolverFactory, WebhookRouter

logger = logging.getLogger(__name__)


def create_app(
    store: MonitoredEntityStore | None = None,
    notifier: AlertNotifier | None = None,
    resolver_factory: ResolverFactory = SkuResolver,
) -> FastAPI:
    """Build the app. Defaults: Postgres store, SMTP notifier, GraphQL resolver."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = store if store is not None else PostgresStore()
    notifier = notifier if notifier is not None else EmailNotifier()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(store, PostgresStore):
            await store.init_tables()
        yield
        await idempotency.close()

    app = FastAPI(title="stockwatch", version=__version__, lifespan=lifespan)

    router = WebhookRouter(store, notifier, resolver_factory=resolver_factory)
    register_webhook_routes(app, router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
