from __future__ import annotations

import logging
import sys
import time
from typing import Optional

import requests

from . import config, notifier, parsers, reconciler, scraper
from .db import ListingStore, SqliteListingStore

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def scan_once(
    store: ListingStore,
    sink: notifier.NotificationSink,
    *,
    url: str = config.SOURCE_URL,
    session: Optional[requests.Session] = None,
) -> int:
    """Fetch, parse, reconcile and notify once. Returns notifications sent."""
    html = scraper.fetch_page(url, session=session)
    sections = parsers.parse_items(scraper.section_lines(html, config.SECTION_SELECTOR))
    logger.info("Successfully parsed %d item section(s)", len(sections))

    events = reconciler.reconcile(sections, store)
    if not events:
        logger.info("No listing changes detected this pass.")
        return 0

    logger.info("Sending %d notification(s)...", len(events))
    sent = notifier.dispatch(
        [notifier.Notification(e.title, e.body) for e in events],
        sink,
        max_workers=config.NOTIFY_MAX_WORKERS,
    )
    logger.info("Sent %d notification(s).", sent)
    return sent


def main() -> None:
    """Initialise and run one pass, or poll when SCRAPE_INTERVAL_MINUTES > 0."""
    config.validate()
    setup_logging()

    store = SqliteListingStore(config.SQLITE_DB_PATH)
    logger.info("Initializing database at %s…", config.SQLITE_DB_PATH)
    store.init_db()

    client = notifier.FcmClient()
    try:
        if config.SCRAPE_INTERVAL_MINUTES <= 0:
            try:
                scan_once(store, client, url=config.SOURCE_URL)
            except Exception:
                logger.exception("Scan of %s failed.", config.SOURCE_URL)
                sys.exit(1)
            return

        logger.info(
            "Monitoring %s every %d minute(s).",
            config.SOURCE_URL, config.SCRAPE_INTERVAL_MINUTES,
        )
        while True:
            try:
                scan_once(store, client, url=config.SOURCE_URL)
            except Exception:
                logger.exception("Scan of %s failed.", config.SOURCE_URL)
            time.sleep(config.SCRAPE_INTERVAL_MINUTES * 60)
    finally:
        client.close()


if __name__ == "__main__":
    main()
