"""Listing persistence.

`SqliteListingStore` keeps one row per order id in the ``item`` table;
`InMemoryListingStore` offers the same surface for tests and dry runs.
"""

from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from .config import SQLITE_DB_PATH
from .models import Exterior, Listing

COLUMNS = ("order_id", "name", "kind", "exterior", "price", "has_sold", "is_stattrak")
UPDATABLE = frozenset(COLUMNS) - {"order_id"}


class ListingStore(Protocol):
    def get(self, order_id: int) -> Optional[Listing]: ...

    def list_all_keys(self) -> List[int]: ...

    def insert_batch(self, listings: Iterable[Listing]) -> None: ...

    def update(self, order_id: int, fields: Mapping[str, Any]) -> None: ...

    def delete(self, order_id: int) -> None: ...


def _check_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE
    if unknown:
        raise ValueError(f"cannot update column(s): {', '.join(sorted(unknown))}")


def _to_db(column: str, value: Any) -> Any:
    if column == "exterior":
        return value.value if value is not None else None
    if column in ("has_sold", "is_stattrak"):
        return int(bool(value))
    return value


def _row_to_listing(row: tuple) -> Listing:
    order_id, name, kind, exterior, price, has_sold, is_stattrak = row
    return Listing(
        order_id=int(order_id),
        name=name,
        kind=kind,
        exterior=Exterior(exterior) if exterior is not None else None,
        price=int(price),
        has_sold=bool(has_sold),
        is_stattrak=bool(is_stattrak),
    )


class SqliteListingStore:
    """SQLite-backed store. Every call runs in its own committed transaction."""

    def __init__(self, path: str = SQLITE_DB_PATH) -> None:
        self.path = path

    def _get_connection(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path)

    def init_db(self) -> None:
        """Create the item table if it doesn't exist."""
        codes = ", ".join(f"'{e.value}'" for e in Exterior)
        with closing(self._get_connection()) as conn:
            # kind and exterior are NULL for vanilla items.
            conn.execute(f"""
              CREATE TABLE IF NOT EXISTS item (
                order_id    INTEGER PRIMARY KEY,
                name        TEXT NOT NULL,
                kind        TEXT NULL,
                exterior    TEXT NULL CHECK (exterior IN ({codes})),
                price       INTEGER NOT NULL,
                has_sold    INTEGER NOT NULL DEFAULT 0,
                is_stattrak INTEGER NOT NULL DEFAULT 0
              )
            """)
            conn.commit()

    def get(self, order_id: int) -> Optional[Listing]:
        with closing(self._get_connection()) as conn:
            cur = conn.execute(
                f"SELECT {', '.join(COLUMNS)} FROM item WHERE order_id = ? LIMIT 1",
                (int(order_id),),
            )
            row = cur.fetchone()
        return _row_to_listing(row) if row else None

    def list_all_keys(self) -> List[int]:
        with closing(self._get_connection()) as conn:
            cur = conn.execute("SELECT order_id FROM item ORDER BY order_id")
            return [int(r[0]) for r in cur.fetchall()]

    def insert_batch(self, listings: Iterable[Listing]) -> None:
        rows = [
            tuple(_to_db(c, getattr(listing, c)) for c in COLUMNS)
            for listing in listings
        ]
        if not rows:
            return
        placeholders = ", ".join("?" for _ in COLUMNS)
        with closing(self._get_connection()) as conn:
            conn.executemany(
                f"INSERT INTO item ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                rows,
            )
            conn.commit()

    def update(self, order_id: int, fields: Mapping[str, Any]) -> None:
        """Set only the given columns on one row."""
        _check_fields(fields)
        if not fields:
            return
        sets = [f"{column} = ?" for column in fields]
        params = [_to_db(column, value) for column, value in fields.items()]
        params.append(int(order_id))

        with closing(self._get_connection()) as conn:
            conn.execute(f"UPDATE item SET {', '.join(sets)} WHERE order_id = ?", tuple(params))
            conn.commit()

    def delete(self, order_id: int) -> None:
        with closing(self._get_connection()) as conn:
            conn.execute("DELETE FROM item WHERE order_id = ?", (int(order_id),))
            conn.commit()


class InMemoryListingStore:
    """Dict-backed store with the same behaviour as `SqliteListingStore`."""

    def __init__(self, listings: Iterable[Listing] = ()) -> None:
        self._items: Dict[int, Listing] = {}
        for listing in listings:
            self._items[listing.order_id] = _copy(listing)

    def get(self, order_id: int) -> Optional[Listing]:
        listing = self._items.get(order_id)
        return _copy(listing) if listing else None

    def list_all_keys(self) -> List[int]:
        return sorted(self._items)

    def insert_batch(self, listings: Iterable[Listing]) -> None:
        staged = [_copy(listing) for listing in listings]
        for listing in staged:
            if listing.order_id in self._items:
                raise KeyError(f"order id {listing.order_id} already stored")
        for listing in staged:
            self._items[listing.order_id] = listing

    def update(self, order_id: int, fields: Mapping[str, Any]) -> None:
        _check_fields(fields)
        listing = self._items.get(order_id)
        if listing is None:
            return
        for column, value in fields.items():
            setattr(listing, column, value)

    def delete(self, order_id: int) -> None:
        self._items.pop(order_id, None)


def _copy(listing: Listing) -> Listing:
    return Listing(**{c: getattr(listing, c) for c in COLUMNS})


__all__ = [
    "ListingStore",
    "SqliteListingStore",
    "InMemoryListingStore",
    "COLUMNS",
]
