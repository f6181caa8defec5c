"""
Restock monitor package.

This package polls product pages, classifies their stock status with
per-target patterns, persists the last status per page, notifies Discord
when a product comes back in stock and relays inbound restock pushes.
See README.md for details.
"""

__all__ = [
    "config",
    "monitor",
    "notifier",
    "scheduler",
    "scraper",
    "state",
    "stock",
    "main",
    "utils",
    "webhook",
]
