"""Offline-first shop-floor data layer: local store, outbox, and background sync."""

__version__ = "0.1.0"
