"""stockwatch: low-stock email alerts driven by Shopify inventory webhooks."""

__version__ = "0.1.0"
