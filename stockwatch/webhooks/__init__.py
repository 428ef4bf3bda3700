"""Inbound Shopify webhooks.

Each delivery is signature-verified, deduplicated, authenticated against the
shop's stored session, and routed by topic.
"""
