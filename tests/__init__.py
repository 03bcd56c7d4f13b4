"""
cafestock test suite

Tests are organized by domain:
- test_unit_conversion.py, test_density_table.py: unit registry and conversion engine
- test_inventory_*.py, test_batch_adjustment.py: item lifecycle and the stock ledger
- test_recipe_*.py, test_stock_check.py: recipe normalization, costing and sufficiency
- test_management_commands.py, test_config_and_logging.py: CLI and app wiring
"""
