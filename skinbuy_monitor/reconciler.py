"""Sync stored listings with a fresh scan of the catalog page.

`reconcile` applies inserts, updates and deletes to the store and returns
the events worth telling the user about, in the order they happened:
scan order for new/price/sold events, then stored-key order for removals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from .db import ListingStore
from .models import Listing
from .parsers import ParsedSection

logger = logging.getLogger(__name__)

# Fields compared when a listed item is seen again.
SYNCED_FIELDS = ("name", "kind", "exterior", "price", "has_sold", "is_stattrak")


class ConsistencyError(Exception):
    """A key listed by the store could not be loaded back."""


class EventKind(str, Enum):
    NEW = "new"
    PRICE_CHANGED = "price_changed"
    SOLD = "sold"
    REMOVED = "removed"


@dataclass
class ListingEvent:
    kind: EventKind
    listing: Listing
    old_price: Optional[int] = None
    new_price: Optional[int] = None

    @property
    def title(self) -> str:
        name = self.listing.display_name
        if self.kind is EventKind.NEW:
            return f"New listing: {name}"
        if self.kind is EventKind.PRICE_CHANGED:
            return f"Price changed: {name}"
        if self.kind is EventKind.SOLD:
            return f"Sold: {name}"
        return f"Removed: {name}"

    @property
    def body(self) -> Optional[str]:
        if self.kind is EventKind.NEW:
            return f"{self.listing.price:,}円"
        if self.kind is EventKind.PRICE_CHANGED:
            return f"{self.old_price:,}円 → {self.new_price:,}円"
        return None


def _changed_fields(stored: Listing, found: Listing) -> Dict[str, Any]:
    return {
        field: getattr(found, field)
        for field in SYNCED_FIELDS
        if getattr(found, field) != getattr(stored, field)
    }


def reconcile(sections: Iterable[ParsedSection], store: ListingStore) -> List[ListingEvent]:
    """Bring `store` in line with `sections` and return the resulting events.

    Store errors propagate unchanged. Raises `ConsistencyError` when a key
    returned by ``store.list_all_keys()`` can no longer be loaded.
    """
    events: List[ListingEvent] = []
    seen: Set[int] = set()
    new_items: List[Listing] = []

    for section in sections:
        if section.order_id in seen:
            logger.warning("Ignoring repeated section for #%d", section.order_id)
            continue
        seen.add(section.order_id)
        stored = store.get(section.order_id)
        found = section.listing

        if stored is not None:
            if found is not None:
                changes = _changed_fields(stored, found)
                if "price" in changes:
                    events.append(ListingEvent(
                        EventKind.PRICE_CHANGED, found,
                        old_price=stored.price, new_price=found.price,
                    ))
                    logger.info(
                        "Price of %s (#%d) changed %d -> %d",
                        found.display_name, found.order_id, stored.price, found.price,
                    )
                if changes:
                    store.update(section.order_id, changes)
            elif not stored.has_sold:
                stored.has_sold = True
                stored.price = section.price
                events.append(ListingEvent(EventKind.SOLD, stored))
                logger.info("%s (#%d) has been sold", stored.display_name, stored.order_id)
                store.update(section.order_id, {"has_sold": True, "price": section.price})
        elif found is not None:
            events.append(ListingEvent(EventKind.NEW, found))
            logger.info("New listing %s (#%d)", found.display_name, found.order_id)
            new_items.append(found)
        # Sold and never stored: nothing to track.

    if new_items:
        store.insert_batch(new_items)

    for order_id in store.list_all_keys():
        if order_id in seen:
            continue
        stored = store.get(order_id)
        if stored is None:
            raise ConsistencyError(f"item #{order_id} not found in database")
        events.append(ListingEvent(EventKind.REMOVED, stored))
        logger.info("%s (#%d) is no longer listed", stored.display_name, order_id)
        store.delete(order_id)

    return events


__all__ = ["reconcile", "ListingEvent", "EventKind", "ConsistencyError"]
