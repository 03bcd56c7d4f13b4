"""
Unit Conversion Service Package

Unit registry, density table and the conversion engine. Owns every decision
about which quantities may be converted and how failures are presented.
"""

from .units import Unit, UnitCategory, lookup_unit, resolve_unit, unit_vocabulary
from .density import DensityTable, DEFAULT_DENSITIES
from .unit_conversion import (
    ConversionEngine,
    NormalizedQuantity,
    get_conversion_engine,
    init_conversion_engine,
)
from .conversion_errors import describe_conversion_error

__all__ = [
    'Unit',
    'UnitCategory',
    'lookup_unit',
    'resolve_unit',
    'unit_vocabulary',
    'DensityTable',
    'DEFAULT_DENSITIES',
    'ConversionEngine',
    'NormalizedQuantity',
    'get_conversion_engine',
    'init_conversion_engine',
    'describe_conversion_error',
]
