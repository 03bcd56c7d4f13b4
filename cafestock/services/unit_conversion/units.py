"""Unit registry.

Synopsis:
Closed enumeration of every supported unit, the category it belongs to and its
fixed linear factor to the category's base unit.

Glossary:
- Base unit: ``g``, ``mL``, ``pieces`` or ``cm``; every same-category quantity
  normalizes to it.
- Factor: ``1 unit = factor x base unit``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from ...exceptions import UnknownUnit


class UnitCategory(str, Enum):
    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"
    LENGTH = "length"

    @property
    def base_unit(self) -> "Unit":
        return _BASE_UNITS[self]

    @property
    def units(self) -> List["Unit"]:
        return [unit for unit in Unit if unit.category is self]


class Unit(str, Enum):
    """Member order is the order selectors show; common units first."""

    def __new__(cls, symbol: str, category: UnitCategory, factor: float):
        member = str.__new__(cls, symbol)
        member._value_ = symbol
        member.category = category
        member.factor = factor
        return member

    # weight (base g)
    G = ("g", UnitCategory.WEIGHT, 1.0)
    KG = ("kg", UnitCategory.WEIGHT, 1000.0)
    OZ = ("oz", UnitCategory.WEIGHT, 28.349523)
    LB = ("lb", UnitCategory.WEIGHT, 453.59237)

    # volume (base mL)
    ML = ("mL", UnitCategory.VOLUME, 1.0)
    L = ("L", UnitCategory.VOLUME, 1000.0)
    TSP = ("tsp", UnitCategory.VOLUME, 4.92892)
    TBSP = ("tbsp", UnitCategory.VOLUME, 14.7868)
    CUP = ("cup", UnitCategory.VOLUME, 236.588)
    FL_OZ = ("fl_oz", UnitCategory.VOLUME, 29.5735)

    # count (base pieces)
    PIECES = ("pieces", UnitCategory.COUNT, 1.0)
    BOXES = ("boxes", UnitCategory.COUNT, 1.0)
    BOTTLES = ("bottles", UnitCategory.COUNT, 1.0)
    BAGS = ("bags", UnitCategory.COUNT, 1.0)
    PACKS = ("packs", UnitCategory.COUNT, 1.0)

    # length (base cm)
    CM = ("cm", UnitCategory.LENGTH, 1.0)
    M = ("m", UnitCategory.LENGTH, 100.0)
    INCH = ("inch", UnitCategory.LENGTH, 2.54)

    def __str__(self) -> str:
        return self.value

    @property
    def is_base_unit(self) -> bool:
        return self.category.base_unit is self


_BASE_UNITS: Dict[UnitCategory, Unit] = {
    UnitCategory.WEIGHT: Unit.G,
    UnitCategory.VOLUME: Unit.ML,
    UnitCategory.COUNT: Unit.PIECES,
    UnitCategory.LENGTH: Unit.CM,
}

_BY_SYMBOL: Dict[str, Unit] = {unit.value: unit for unit in Unit}

BRIDGEABLE_CATEGORIES = frozenset({UnitCategory.WEIGHT, UnitCategory.VOLUME})


def lookup_unit(unit: Any) -> Optional[Unit]:
    """Return the registered unit for a symbol, or ``None``. Symbols are case-sensitive (``mL`` vs ``m``)."""
    if isinstance(unit, Unit):
        return unit
    if not isinstance(unit, str):
        return None
    return _BY_SYMBOL.get(unit.strip())


def resolve_unit(unit: Any) -> Unit:
    resolved = lookup_unit(unit)
    if resolved is None:
        raise UnknownUnit(unit)
    return resolved


def unit_vocabulary() -> Dict[str, List[str]]:
    """The category -> symbols grouping shared with any UI."""
    return {category.value: [unit.value for unit in category.units] for category in UnitCategory}
