"""Item section parsing.

The catalog page renders every item as a fixed run of text nodes::

    ★
    AK-47 | Redline (Field-Tested) #123
    <blank>
    販売価格: 15,000円

`parse_items` walks the flattened text of the page looking for the ``★``
marker and hands each name/price pair to `parse_item_section`.  A broken
section is logged and skipped; scanning resumes at the next marker.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, List, Optional

from .models import Exterior, Listing

logger = logging.getLogger(__name__)

SECTION_MARKER = "★"
STATTRAK = "StatTrak "
NAME_SEPARATOR = " | "

# Storage column is a signed 32-bit integer.
MAX_INT = 2**31 - 1

SOLD_MATCHER = re.compile(r"\((?:売約済み|sold)\) #([0-9]+)")
VANILLA_MATCHER = re.compile(r"(.+?) \(Vanilla\) #([0-9]+)")
ITEM_MATCHER = re.compile(r"(.+?) \(([-A-Za-z ]+)\) #([0-9]+)")
PRICE_MATCHER = re.compile(r"(?:販売価格|price): *([0-9,]+) *円?")


class ParseError(Exception):
    """Base class for a section that could not be turned into a record."""


class InvalidItemFormat(ParseError):
    expected = "`name | kind (exterior) #id`, `name (Vanilla) #id` or `(売約済み) #id`"

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"invalid item format (expected {self.expected}, found `{line}`)")


class InvalidPriceFormat(InvalidItemFormat):
    expected = "`販売価格: 1,234円`"


class InvalidExterior(ParseError):
    def __init__(self, exterior: str) -> None:
        self.exterior = exterior
        super().__init__(
            f"invalid exterior (expected `FN`, `MW`, `FT`, `WW` or `BS`, found `{exterior}`)"
        )


class InvalidNumber(ParseError):
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"invalid number `{text}`")


@dataclass
class ParsedSection:
    order_id: int
    # Last known price, also present for sold sections.
    price: int
    # None when the section only says the item has been sold.
    listing: Optional[Listing] = None


def _parse_number(text: str) -> int:
    digits = text.replace(",", "")
    if not digits.isdigit():
        raise InvalidNumber(text)
    value = int(digits)
    if value > MAX_INT:
        raise InvalidNumber(text)
    return value


def _parse_price(price_line: str) -> int:
    caps = PRICE_MATCHER.search(price_line or "")
    if caps is None:
        raise InvalidPriceFormat(price_line)
    return _parse_number(caps.group(1))


def parse_item_section(item_name_line: str, price_line: str) -> ParsedSection:
    """Turn one name line and one price line into a `ParsedSection`.

    Name line shapes are tried in order: sold marker, vanilla item,
    ``name | kind (exterior) #id``.  Raises a `ParseError` subclass when
    neither line can be understood.
    """
    line = (item_name_line or "").strip()

    sold_caps = SOLD_MATCHER.fullmatch(line)
    if sold_caps:
        order_id = _parse_number(sold_caps.group(1))
        return ParsedSection(order_id=order_id, price=_parse_price(price_line))

    segments = line.split(NAME_SEPARATOR)
    kind: Optional[str] = None
    exterior: Optional[Exterior] = None

    if len(segments) == 1:
        caps = VANILLA_MATCHER.fullmatch(segments[0])
        if caps is None:
            raise InvalidItemFormat(item_name_line)
        name = caps.group(1)
        order_id = _parse_number(caps.group(2))
    elif len(segments) == 2:
        caps = ITEM_MATCHER.fullmatch(segments[1].strip())
        if caps is None:
            raise InvalidItemFormat(item_name_line)
        name = segments[0]
        kind = caps.group(1).strip()
        try:
            exterior = Exterior.parse(caps.group(2))
        except ValueError:
            raise InvalidExterior(caps.group(2)) from None
        order_id = _parse_number(caps.group(3))
    else:
        raise InvalidItemFormat(item_name_line)

    name = name.strip()
    is_stattrak = name.startswith(STATTRAK)
    if is_stattrak:
        name = name[len(STATTRAK):].strip()

    price = _parse_price(price_line)
    return ParsedSection(
        order_id=order_id,
        price=price,
        listing=Listing(
            order_id=order_id,
            name=name,
            kind=kind,
            exterior=exterior,
            price=price,
            has_sold=False,
            is_stattrak=is_stattrak,
        ),
    )


class _State(Enum):
    SEEKING = auto()
    EXPECT_NAME = auto()
    EXPECT_BLANK = auto()
    EXPECT_PRICE = auto()
    EMIT = auto()


def _is_marker(line: str) -> bool:
    return line.strip() == SECTION_MARKER


def _warn_corrupted_section(why: object) -> None:
    logger.warning("Found corrupted item section, %s", why)


def parse_items(lines: Iterable[str]) -> List[ParsedSection]:
    """Consume `lines` once and return every well-formed section in page order.

    Never raises on malformed input; broken sections are logged and dropped.
    """
    it = iter(lines)
    items: List[ParsedSection] = []
    state = _State.SEEKING
    name_line: Optional[str] = None
    price_line: Optional[str] = None

    while True:
        if state is _State.SEEKING:
            line = next(it, None)
            if line is None:
                break
            if _is_marker(line):
                state = _State.EXPECT_NAME

        elif state is _State.EXPECT_NAME:
            name_line = next(it, None)
            if name_line is None:
                _warn_corrupted_section("missing name line.")
                state = _State.SEEKING
            elif _is_marker(name_line):
                _warn_corrupted_section("missing name line.")
            else:
                state = _State.EXPECT_BLANK

        elif state is _State.EXPECT_BLANK:
            line = next(it, None)
            if line is None:
                _warn_corrupted_section("missing blank line.")
                state = _State.SEEKING
            elif _is_marker(line):
                # The next section started early; restart on it.
                _warn_corrupted_section("missing blank line.")
                state = _State.EXPECT_NAME
            else:
                state = _State.EXPECT_PRICE

        elif state is _State.EXPECT_PRICE:
            price_line = next(it, None)
            if price_line is None:
                _warn_corrupted_section("missing price line.")
                state = _State.SEEKING
            elif _is_marker(price_line):
                _warn_corrupted_section("missing price line.")
                state = _State.EXPECT_NAME
            else:
                state = _State.EMIT

        elif state is _State.EMIT:
            try:
                items.append(parse_item_section(name_line, price_line))
            except ParseError as e:
                _warn_corrupted_section(e)
            state = _State.SEEKING

    logger.debug("Parsed %d item section(s)", len(items))
    return items


__all__ = [
    "ParsedSection",
    "ParseError",
    "InvalidItemFormat",
    "InvalidPriceFormat",
    "InvalidExterior",
    "InvalidNumber",
    "parse_item_section",
    "parse_items",
]
