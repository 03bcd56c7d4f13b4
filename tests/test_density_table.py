import json

import pytest

from cafestock.exceptions import ValidationError
from cafestock.services.unit_conversion import DEFAULT_DENSITIES, DensityTable


def test_lookup_is_case_insensitive_and_stripped():
    table = DensityTable.default()
    assert table.lookup("  Honey ") == pytest.approx(1.42)
    assert "MILK" in table
    assert table.lookup("unobtainium") is None
    assert table.lookup(None) is None


def test_default_table_matches_reference_values():
    assert DEFAULT_DENSITIES["sugar"] == 0.85
    assert DEFAULT_DENSITIES["flour"] == 0.59
    assert DEFAULT_DENSITIES["water"] == 1.00


@pytest.mark.parametrize("bad", [0, -1, "abc", float("inf")])
def test_entries_must_be_positive_finite(bad):
    table = DensityTable()
    with pytest.raises(ValidationError):
        table.set("oat milk", bad)


def test_reference_file_with_aliases(tmp_path):
    path = tmp_path / "densities.json"
    path.write_text(json.dumps({
        "common_densities": [
            {"name": "Oat Milk", "density_g_per_ml": 1.03, "aliases": ["oat drink"]},
            {"name": "sugar", "density": 0.9},
        ]
    }))

    table = DensityTable.from_reference_file(str(path))

    assert table.lookup("oat drink") == pytest.approx(1.03)
    assert table.lookup("sugar") == pytest.approx(0.9)
    assert table.lookup("flour") == pytest.approx(0.59)


def test_flat_reference_file_without_defaults(tmp_path):
    path = tmp_path / "flat.json"
    path.write_text(json.dumps({"matcha": 0.6}))

    table = DensityTable.from_reference_file(str(path), base={})

    assert len(table) == 1
    assert list(table) == ["matcha"]


def test_suggest_prefers_close_match_then_substring():
    table = DensityTable({"vanilla syrup": 1.33, "milk": 1.03})
    assert table.suggest("vanila syrup") == ("vanilla syrup", 1.33)
    assert table.suggest("whole milk powder") == ("milk", 1.03)
    assert table.suggest("saffron") is None


def test_applies_to_only_weight_volume_pairs():
    assert DensityTable.applies_to("g", "cup")
    assert DensityTable.applies_to("fl_oz", "lb")
    assert not DensityTable.applies_to("g", "kg")
    assert not DensityTable.applies_to("pieces", "mL")
