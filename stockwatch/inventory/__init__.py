"""Inventory alert pipeline: normalize, resolve, evaluate, notify."""
