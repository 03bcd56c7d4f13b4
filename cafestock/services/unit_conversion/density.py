"""Ingredient density table (grams per millilitre).

The table is an explicit dependency of the conversion engine: build one,
hand it to ``ConversionEngine`` and nothing else reads it.
"""

from __future__ import annotations

import json
import logging
import math
from difflib import SequenceMatcher
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from ...exceptions import ValidationError
from .units import BRIDGEABLE_CATEGORIES, resolve_unit

logger = logging.getLogger(__name__)

DEFAULT_DENSITIES: Dict[str, float] = {
    # Baking
    'sugar': 0.85,
    'granulated sugar': 0.85,
    'brown sugar': 0.80,
    'powdered sugar': 0.56,
    'flour': 0.59,
    'all-purpose flour': 0.59,
    'bread flour': 0.57,
    'cake flour': 0.53,
    'cornstarch': 0.53,

    # Liquids
    'water': 1.00,
    'milk': 1.03,
    'cream': 1.00,
    'half and half': 1.02,
    'oil': 0.92,
    'vegetable oil': 0.92,
    'olive oil': 0.92,
    'coconut oil': 0.92,
    'honey': 1.42,
    'maple syrup': 1.33,
    'corn syrup': 1.38,

    # Dairy
    'butter': 0.91,
    'yogurt': 1.04,
    'sour cream': 0.99,

    # Pantry
    'salt': 1.20,
    'table salt': 1.20,
    'kosher salt': 0.50,
    'sea salt': 1.20,
    'baking soda': 0.92,
    'baking powder': 0.72,
    'yeast': 0.95,
    'cocoa powder': 0.53,
    'chocolate chips': 0.64,

    # Coffee bar
    'coffee beans': 0.43,
    'ground coffee': 0.38,
    'espresso': 1.04,
    'syrup': 1.33,
    'caramel syrup': 1.33,
    'vanilla syrup': 1.33,
    'chocolate syrup': 1.33,

    # Desserts
    'gelatin powder': 0.86,
    'agar agar': 0.80,
    'jelly powder': 0.85,
    'pudding mix': 0.70,
}


def _normalize_name(name: Any) -> str:
    return str(name or '').strip().lower()


def _validate_density(name: str, value: Any) -> float:
    try:
        density = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Density for {name!r} must be a number, got {value!r}")
    if not math.isfinite(density) or density <= 0:
        raise ValidationError(f"Density for {name!r} must be a positive number, got {value!r}")
    return density


class DensityTable:
    """Case-insensitive ``ingredient name -> g/mL`` mapping."""

    def __init__(self, entries: Optional[Mapping[str, Any]] = None):
        self._entries: Dict[str, float] = {}
        for name, value in (entries or {}).items():
            self.set(name, value)

    @classmethod
    def default(cls) -> "DensityTable":
        return cls(DEFAULT_DENSITIES)

    @classmethod
    def from_reference_file(cls, path: str, base: Optional[Mapping[str, Any]] = None) -> "DensityTable":
        """Load ``{"common_densities": [{"name", "density_g_per_ml", "aliases"}]}`` on top of ``base``.

        A flat ``{"name": density}`` object is accepted as well.
        """
        table = cls(DEFAULT_DENSITIES if base is None else base)
        with open(path, 'r', encoding='utf-8') as handle:
            payload = json.load(handle)

        if isinstance(payload, dict) and 'common_densities' in payload:
            for entry in payload['common_densities']:
                density = entry.get('density_g_per_ml', entry.get('density'))
                table.set(entry['name'], density)
                for alias in entry.get('aliases', []):
                    table.set(alias, density)
        elif isinstance(payload, dict):
            for name, density in payload.items():
                table.set(name, density)
        else:
            raise ValidationError(f"Density reference file {path} must contain a JSON object")

        logger.info("Loaded density reference from %s (%d entries)", path, len(table))
        return table

    def set(self, name: str, density: Any) -> None:
        key = _normalize_name(name)
        if not key:
            raise ValidationError("Density entry needs an ingredient name")
        self._entries[key] = _validate_density(key, density)

    def lookup(self, name: Optional[str]) -> Optional[float]:
        if not name:
            return None
        return self._entries.get(_normalize_name(name))

    def has(self, name: Optional[str]) -> bool:
        return self.lookup(name) is not None

    def suggest(self, name: Optional[str], threshold: float = 0.8) -> Optional[Tuple[str, float]]:
        """Best fuzzy match for an unknown ingredient, used only for hints."""
        key = _normalize_name(name)
        if not key:
            return None
        if key in self._entries:
            return key, self._entries[key]

        best: Optional[Tuple[str, float]] = None
        best_score = 0.0
        for candidate, density in self._entries.items():
            score = SequenceMatcher(None, key, candidate).ratio()
            if score > best_score and score >= threshold:
                best, best_score = (candidate, density), score
        if best is None:
            for candidate, density in self._entries.items():
                if candidate in key:
                    if best is None or len(candidate) > len(best[0]):
                        best = (candidate, density)
        return best

    @staticmethod
    def applies_to(from_unit: Any, to_unit: Any) -> bool:
        """True when the unit pair crosses the weight/volume bridge."""
        categories = {resolve_unit(from_unit).category, resolve_unit(to_unit).category}
        return categories == set(BRIDGEABLE_CATEGORIES)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def items(self):
        return self._entries.items()
