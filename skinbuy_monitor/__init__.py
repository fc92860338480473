"""
Skin shop monitoring service package.

This package contains modules for scraping the skinbuy catalog page,
parsing its item sections, keeping the stored listings in sync and
pushing change notifications through Firebase Cloud Messaging.
See DESIGN.md for details.
"""

__all__ = [
    "config",
    "db",
    "models",
    "notifier",
    "parsers",
    "reconciler",
    "scraper",
    "main",
    "utils",
]
