"""Listing record and exterior grades."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Exterior(str, Enum):
    """Wear grade of a skin. Stored by code."""

    FN = "FN"
    MW = "MW"
    FT = "FT"
    WW = "WW"
    BS = "BS"

    @property
    def label(self) -> str:
        return EXTERIOR_LABELS[self]

    @classmethod
    def parse(cls, text: str) -> "Exterior":
        """Accept a code (``FT``) or the label shown on the page (``Field-Tested``)."""
        t = (text or "").strip()
        for ext, label in EXTERIOR_LABELS.items():
            if t == ext.value or t == label:
                return ext
        raise ValueError(f"unknown exterior {t!r}")


EXTERIOR_LABELS = {
    Exterior.FN: "Factory New",
    Exterior.MW: "Minimal Wear",
    Exterior.FT: "Field-Tested",
    Exterior.WW: "Well-Worn",
    Exterior.BS: "Battle-Scarred",
}


@dataclass
class Listing:
    # kind and exterior are None for vanilla items.
    order_id: int
    name: str
    kind: Optional[str]
    exterior: Optional[Exterior]
    price: int
    has_sold: bool = False
    is_stattrak: bool = False

    def __post_init__(self) -> None:
        if (self.kind is None) != (self.exterior is None):
            raise ValueError(
                f"listing #{self.order_id}: kind and exterior must both be set or both be empty"
            )
        if self.price < 0:
            raise ValueError(f"listing #{self.order_id}: negative price {self.price}")

    @property
    def display_name(self) -> str:
        if self.kind is None:
            return f"{self.name} | Vanilla"
        return f"{self.name} | {self.kind}"

    @property
    def full_name(self) -> str:
        if self.exterior is None:
            return self.display_name
        return f"{self.display_name} ({self.exterior.label})"

    def __str__(self) -> str:
        return self.display_name


__all__ = ["Exterior", "EXTERIOR_LABELS", "Listing"]
