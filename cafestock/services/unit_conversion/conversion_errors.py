"""
Conversion error presenter.

Owns the decision of what an operator is told when a conversion fails.
Any service that surfaces a ConversionEngine failure to a person should call
``describe_conversion_error`` instead of formatting its own message.
"""

from typing import Any, Dict, Optional

from ...exceptions import IncompatibleUnits, InventoryError, MissingDensity, UnknownUnit
from .density import DensityTable


def describe_conversion_error(error: InventoryError, density_table: Optional[DensityTable] = None) -> Dict[str, Any]:
    payload = error.to_dict()
    data = error.error_data

    if isinstance(error, MissingDensity):
        suggestion = density_table.suggest(data.get('ingredient_name')) if density_table else None
        payload.update({
            'fix_action': 'set_density',
            'ingredient_name': data.get('ingredient_name'),
            'from_unit': data.get('from_unit'),
            'to_unit': data.get('to_unit'),
            'suggested_density': suggestion[1] if suggestion else None,
            'suggested_reference': suggestion[0] if suggestion else None,
            'error_message': 'Missing density for conversion',
        })
    elif isinstance(error, IncompatibleUnits):
        payload.update({
            'fix_action': 'choose_compatible_unit',
            'from_unit': data.get('from_unit'),
            'to_unit': data.get('to_unit'),
            'error_message': f"{data.get('from_category')} and {data.get('to_category')} units cannot be mixed",
        })
    elif isinstance(error, UnknownUnit):
        payload.update({
            'fix_action': 'choose_known_unit',
            'unknown_unit': data.get('unit'),
            'error_message': f"Unknown unit: {data.get('unit')}",
        })
    else:
        payload.update({
            'fix_action': None,
            'error_message': data.get('message', error.message),
        })
    return payload
