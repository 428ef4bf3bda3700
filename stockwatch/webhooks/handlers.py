"""Webhook HTTP handlers: FastAPI routes for inbound Shopify webhooks.

Each request:
1. Reads raw body (needed for HMAC verification)
2. Verifies the Shopify signature
3. Checks idempotency (duplicates are acknowledged, not reprocessed)
4. Routes by topic (shop authentication happens in the router)
5. Maps the RouteResult to an HTTP response

Security contract:
- Never return error details to webhook caller (info disclosure)
- Return 401 only for signature failures
- Log all webhook activity for audit trail
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from stockwatch.webhooks import idempotency
from stockwatch.webhooks.router import SUCCESS_BODY, RouteResult, WebhookRouter
from stockwatch.webhooks.topics import InboundWebhookEvent, normalize_topic
from stockwatch.webhooks.verification import verify_webhook

logger = logging.getLogger(__name__)


def _log_webhook(topic: str, shop: str, webhook_id: str, status: str) -> None:
    """Audit log for webhook activity."""
    logger.info(
        "WEBHOOK_AUDIT topic=%s shop=%s id=%s status=%s",
        topic or "unknown",
        shop or "unknown",
        webhook_id or "unknown",
        status,
    )


def _to_response(result: RouteResult) -> Response:
    if isinstance(result.body, dict):
        return JSONResponse(result.body, status_code=result.status_code)
    return PlainTextResponse(str(result.body), status_code=result.status_code)


async def handle_shopify_webhook(
    request: Request, router: WebhookRouter, path_topic: str = ""
) -> Response:
    """Generic Shopify webhook handler."""
    start = time.time()

    body = await request.body()
    headers = {k.lower(): v for k, v in request.headers.items()}

    topic = normalize_topic(headers.get("x-shopify-topic") or path_topic)
    shop = headers.get("x-shopify-shop-domain", "")
    webhook_id = headers.get("x-shopify-webhook-id", "")

    if not verify_webhook(body, headers):
        _log_webhook(topic, shop, webhook_id, "signature_failed")
        return JSONResponse({"status": "unauthorized"}, status_code=401)

    if await idempotency.is_duplicate(webhook_id):
        _log_webhook(topic, shop, webhook_id, "duplicate")
        return JSONResponse(SUCCESS_BODY, status_code=200)

    event = InboundWebhookEvent(
        topic=topic,
        shop=shop,
        raw_payload=body or None,
        webhook_id=webhook_id,
    )
    result = await router.route(event)

    if result.status_code != 200:
        # Let the platform's redelivery through.
        await idempotency.release(webhook_id)

    status = "processed" if result.status_code == 200 else f"http_{result.status_code}"
    _log_webhook(topic, shop, webhook_id, status)

    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Webhook processed in %.1fms: %s", elapsed_ms, topic)

    return _to_response(result)


def register_webhook_routes(app: FastAPI, router: WebhookRouter) -> None:
    """Register webhook endpoint routes on the FastAPI app."""

    @app.post("/webhooks/shopify")
    async def shopify_webhook(request: Request):
        """Receive Shopify webhooks (signature-verified)."""
        return await handle_shopify_webhook(request, router)

    @app.post("/webhooks/shopify/{topic:path}")
    async def shopify_webhook_with_topic(request: Request, topic: str):
        """Receive Shopify webhooks with topic subpath."""
        return await handle_shopify_webhook(request, router, path_topic=topic)

    logger.info("Webhook routes registered: /webhooks/shopify")
