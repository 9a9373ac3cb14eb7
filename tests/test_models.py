from __future__ import annotations

import random

import pytest

from konsut_stock.errors import ParseError, ValidationError
from konsut_stock.models import (
    StockItem,
    coerce_number,
    generate_item_id,
    parse_category,
    tidy_number,
)


def test_generate_item_id_uses_category_prefix() -> None:
    for category, prefix in (("products", "P"), ("mobilization", "M"), ("services", "S")):
        item_id = generate_item_id(category)
        assert item_id.startswith(prefix)
        assert 1000 <= int(item_id[1:]) <= 9999


def test_generate_item_id_skips_taken_ids() -> None:
    first = generate_item_id("products", rng=random.Random(7))
    second = generate_item_id("products", {first}, rng=random.Random(7))
    assert second != first
    assert second.startswith("P")


@pytest.mark.parametrize(
    "value, expected",
    [("12", 12), ("2.5", 2.5), (3.0, 3), (None, 0), ("", 0), ("abc", 0), (True, 0), ("inf", 0)],
)
def test_coerce_number(value: object, expected: object) -> None:
    result = coerce_number(value)
    assert result == expected
    assert type(result) is type(expected)


def test_tidy_number_drops_integral_fraction() -> None:
    assert isinstance(tidy_number(4.0), int)
    assert tidy_number(4.5) == 4.5


def test_parse_category() -> None:
    assert parse_category(" Services ") == "services"
    with pytest.raises(ValidationError):
        parse_category("tools")


def test_from_record_defaults_missing_fields() -> None:
    item = StockItem.from_record({"quantity": "x"}, "mobilization", existing_ids={"M1000"})

    assert item.name == "Unknown Item"
    assert item.category == "mobilization"
    assert item.id.startswith("M")
    assert item.quantity == 0
    assert item.price_ksh == 0
    assert item.price_usd is None
    assert item.description is None


def test_from_record_rejects_non_objects() -> None:
    with pytest.raises(ParseError):
        StockItem.from_record(["P1000", "Router"], "products")


def test_to_dict_uses_persisted_field_names() -> None:
    item = StockItem(id="P1000", name="Router", category="products", quantity=2, price_ksh=5000)
    assert item.to_dict() == {
        "id": "P1000",
        "name": "Router",
        "category": "products",
        "quantity": 2,
        "priceKsh": 5000,
        "priceUSD": None,
        "description": None,
    }
    assert StockItem.from_record(item.to_dict(), "products") == item
    assert item.line_value == 10000
    assert item.is_low_stock
