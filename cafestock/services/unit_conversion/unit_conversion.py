from __future__ import annotations

import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, NamedTuple, Optional

from flask import current_app

from ...exceptions import IncompatibleUnits, InvalidQuantity, MissingDensity, UnknownUnit, ValidationError
from .density import DensityTable
from .units import BRIDGEABLE_CATEGORIES, Unit, UnitCategory, lookup_unit, resolve_unit

logger = logging.getLogger(__name__)

# Coarse units whose stored values keep an extra decimal place
_THREE_DECIMAL_UNITS = frozenset({Unit.KG, Unit.L, Unit.M})


class NormalizedQuantity(NamedTuple):
    quantity: float
    unit: Unit


class ConversionEngine:
    """
    Unit conversion engine.

    Handles identity, same-category linear conversions and the single
    weight <-> volume bridge through an ingredient density. There is no
    conversion graph: anything else is rejected.
    """

    def __init__(self, density_table: Optional[DensityTable] = None):
        self.density_table = density_table if density_table is not None else DensityTable()

    # ------------------------------------------------------------------
    # Registry queries
    # ------------------------------------------------------------------
    @staticmethod
    def is_valid_unit(unit: Any) -> bool:
        return lookup_unit(unit) is not None

    @staticmethod
    def category_of(unit: Any) -> UnitCategory:
        return resolve_unit(unit).category

    @staticmethod
    def compatible_units(category: Any) -> List[Unit]:
        try:
            return UnitCategory(category).units
        except ValueError:
            known = ", ".join(member.value for member in UnitCategory)
            raise ValidationError(f"Unknown unit category {category!r}; expected one of {known}")

    @staticmethod
    def base_unit_for(unit: Any) -> Unit:
        return resolve_unit(unit).category.base_unit

    @staticmethod
    def are_compatible(unit_a: Any, unit_b: Any) -> bool:
        """Same category, or a weight/volume pair (convertible once a density is known)."""
        first, second = lookup_unit(unit_a), lookup_unit(unit_b)
        if first is None or second is None:
            return False
        if first.category is second.category:
            return True
        return {first.category, second.category} == set(BRIDGEABLE_CATEGORIES)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------
    def resolve_density(self, ingredient_name: Optional[str] = None, density: Any = None) -> Optional[float]:
        """Explicit density wins over the name-keyed table; non-positive values count as missing."""
        if density is not None:
            try:
                value = float(density)
            except (TypeError, ValueError):
                value = None
            if value is not None and math.isfinite(value) and value > 0:
                return value
            if value is not None:
                logger.warning("Ignoring non-positive density %r for %s", density, ingredient_name)
        return self.density_table.lookup(ingredient_name)

    def convert(
        self,
        quantity: Any,
        from_unit: Any,
        to_unit: Any,
        ingredient_name: Optional[str] = None,
        density: Any = None,
    ) -> float:
        amount = _coerce_quantity(quantity)
        source = resolve_unit(from_unit)
        target = resolve_unit(to_unit)

        if source is target:
            return amount

        if source.category is target.category:
            return amount * source.factor / target.factor

        if {source.category, target.category} != set(BRIDGEABLE_CATEGORIES):
            raise IncompatibleUnits(source.value, target.value, source.category.value, target.category.value)

        used_density = self.resolve_density(ingredient_name, density)
        if used_density is None:
            logger.warning(
                "CONVERSION ENGINE: missing density for %s -> %s (ingredient=%s)",
                source.value, target.value, ingredient_name,
            )
            raise MissingDensity(source.value, target.value, ingredient_name)

        if source.category is UnitCategory.WEIGHT:
            grams = amount * source.factor
            millilitres = grams / used_density
            return millilitres / target.factor

        millilitres = amount * source.factor
        grams = millilitres * used_density
        return grams / target.factor

    def can_convert(self, from_unit: Any, to_unit: Any, ingredient_name: Optional[str] = None, density: Any = None) -> bool:
        try:
            self.convert(1.0, from_unit, to_unit, ingredient_name=ingredient_name, density=density)
        except (UnknownUnit, IncompatibleUnits, MissingDensity):
            return False
        return True

    def normalize_to_base_unit(self, quantity: Any, unit: Any) -> NormalizedQuantity:
        base = self.base_unit_for(unit)
        converted = self.convert(quantity, unit, base)
        return NormalizedQuantity(self.format_quantity(converted, base), base)

    def to_storage_quantity(
        self,
        quantity: Any,
        from_unit: Any,
        to_unit: Any,
        ingredient_name: Optional[str] = None,
        density: Any = None,
    ) -> float:
        """
        Convert ``quantity`` into the stored unit and round it to that unit's
        precision. Every persisted base quantity goes through here, whether or
        not the units differ. A positive amount that rounds to nothing raises
        ``InvalidQuantity``.
        """
        amount = _coerce_quantity(quantity)
        target = resolve_unit(to_unit)
        stored = self.format_quantity(
            self.convert(amount, from_unit, target, ingredient_name=ingredient_name, density=density),
            target,
        )
        if amount > 0 and stored <= 0:
            raise InvalidQuantity(quantity, f"rounds to 0 {target.value}")
        return stored

    # ------------------------------------------------------------------
    # Display / storage rounding
    # ------------------------------------------------------------------
    @staticmethod
    def format_quantity(quantity: Any, unit: Any) -> float:
        """Round once, at the point a converted value is persisted."""
        resolved = resolve_unit(unit)
        value = _coerce_quantity(quantity)
        if resolved.category is UnitCategory.COUNT:
            decimals = 0
        elif resolved in _THREE_DECIMAL_UNITS:
            decimals = 3
        else:
            decimals = 2
        return _round_half_up(value, decimals)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    def mismatch_message(self, recipe_unit: Any, inventory_unit: Any, ingredient_name: Optional[str] = None) -> str:
        recipe = lookup_unit(recipe_unit)
        inventory = lookup_unit(inventory_unit)
        if recipe is None:
            return f'Unknown unit in recipe: "{recipe_unit}"'
        if inventory is None:
            return f'Unknown unit in inventory: "{inventory_unit}"'
        if recipe.category is inventory.category:
            return f"Recipe uses {recipe} and inventory uses {inventory}; both are {recipe.category.value}."

        if {recipe.category, inventory.category} == set(BRIDGEABLE_CATEGORIES):
            prefix = (
                f"Recipe uses {recipe} ({recipe.category.value}) but inventory uses "
                f"{inventory} ({inventory.category.value}). "
            )
            if self.density_table.has(ingredient_name):
                return prefix + f"We can convert this using density data for {ingredient_name}."
            return prefix + (
                f"Please provide density data for {ingredient_name or 'this ingredient'} "
                "or use the same unit type."
            )

        return (
            f"Cannot convert {recipe} ({recipe.category.value}) to {inventory} ({inventory.category.value}). "
            "Units must be in the same category or have density data."
        )


def _coerce_quantity(quantity: Any) -> float:
    if isinstance(quantity, bool):
        raise InvalidQuantity(quantity, "must be a number")
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity, "must be a number")
    if not math.isfinite(value):
        raise InvalidQuantity(quantity, "must be finite")
    return value


def _round_half_up(value: float, decimals: int) -> float:
    exponent = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)
    return float(rounded) + 0.0


def init_conversion_engine(app) -> ConversionEngine:
    """Build the app's engine from ``DENSITY_REFERENCE_FILE`` (or the default table)."""
    reference_file = app.config.get("DENSITY_REFERENCE_FILE")
    if reference_file:
        table = DensityTable.from_reference_file(reference_file)
    else:
        table = DensityTable.default()
    engine = ConversionEngine(table)
    app.extensions["conversion_engine"] = engine
    return engine


def get_conversion_engine() -> ConversionEngine:
    engine = current_app.extensions.get("conversion_engine")
    if engine is None:
        engine = init_conversion_engine(current_app)
    return engine
