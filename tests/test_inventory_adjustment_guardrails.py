import re
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parent.parent / "cafestock"
CANONICAL_WRITER = "services/inventory_adjustment/_core.py"


def test_no_direct_stock_mutations_outside_canonical_service():
    pattern = re.compile(r"\.current_stock\s*([+\-]?=)(?!=)")
    violations = []

    for path in PACKAGE_ROOT.rglob("*.py"):
        rel_path = path.relative_to(PACKAGE_ROOT).as_posix()
        if rel_path == CANONICAL_WRITER:
            continue

        text = path.read_text(encoding="utf-8")
        for match in pattern.finditer(text):
            line_start = text.rfind("\n", 0, match.start()) + 1
            line_end = text.find("\n", match.start())
            if line_end == -1:
                line_end = len(text)
            violations.append(f"{rel_path}: {text[line_start:line_end].strip()}")

    assert not violations, (
        "Direct current_stock writes detected outside the canonical inventory adjustment "
        "service. Route them through cafestock.services.inventory_adjustment.adjust_stock: \n- "
        + "\n- ".join(violations)
    )


def test_canonical_writer_still_owns_the_stock_update():
    text = (PACKAGE_ROOT / CANONICAL_WRITER).read_text(encoding="utf-8")
    assert re.search(r"\.current_stock\s*=(?!=)", text)
