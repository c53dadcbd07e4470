"""
Tests for row validation and mapping.
"""
from decimal import Decimal

import pytest

from app.models.import_options import ProcessingOptions
from app.models.import_results import RowErr, RowOk
from app.services.csv_row_validator import RowValidator, parse_flag, parse_int, parse_price
from csv_samples import HEADERS


def row(number="A-1", price="10,50", condition="1", title="Bremsscheibe", brand="BOSCH 0986479",
        deposit="0", shipping="1", delivery="2"):
    return [number, price, condition, title, brand, deposit, shipping, delivery]


@pytest.fixture
def validator():
    return RowValidator()


@pytest.fixture
def strict():
    return ProcessingOptions()


@pytest.fixture
def flexible():
    return ProcessingOptions(validation_mode="flexible")


class TestParsers:
    """Test value parsers."""

    @pytest.mark.parametrize("raw,expected", [
        ("10,50", Decimal("10.50")),
        ("10.5", Decimal("10.50")),
        ("€ 7,999", Decimal("8.00")),
        ("0", Decimal("0.00")),
    ])
    def test_parse_price(self, raw, expected):
        assert parse_price(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "1.2.3", "."])
    def test_parse_price_invalid(self, raw):
        assert parse_price(raw) is None

    def test_parse_int(self):
        assert parse_int("3") == 3
        assert parse_int("3,0") == 3
        assert parse_int("3.5") is None
        assert parse_int("") is None
        assert parse_int("x") is None

    def test_parse_flag(self):
        assert parse_flag("ja") is True
        assert parse_flag("Nein") is False
        assert parse_flag("vielleicht") is None


class TestRowValidator:
    """Test RowValidator."""

    def test_valid_row(self, validator, strict):
        result = validator.validate(HEADERS, row(), 2, strict)

        assert isinstance(result, RowOk)
        record = result.record
        assert record.internal_article_number == "A-1"
        assert record.price == Decimal("10.50")
        assert record.condition == 1
        assert record.title == "Bremsscheibe"
        assert record.brand_and_part_number == "BOSCH 0986479"
        assert record.delivery_days == 2

    def test_validation_is_repeatable(self, validator, strict):
        first = validator.validate(HEADERS, row(), 2, strict)
        second = validator.validate(HEADERS, row(), 2, strict)
        assert first == second

    def test_missing_price(self, validator, strict):
        result = validator.validate(HEADERS, row(price=""), 2, strict)

        assert isinstance(result, RowErr)
        assert "Price is required" in result.messages

    def test_non_numeric_price_and_condition_both_reported(self, validator, strict):
        result = validator.validate(HEADERS, row(price="abc", condition="9"), 5, strict)

        assert isinstance(result, RowErr)
        assert "Price must be numeric, got 'abc'" in result.messages
        assert "Condition must be an integer between 0 and 5" in result.messages

    def test_negative_price(self, validator, strict):
        result = validator.validate(HEADERS, row(price="-3,00"), 2, strict)

        assert isinstance(result, RowErr)
        assert "Price cannot be negative" in result.messages

    def test_missing_article_number(self, validator, strict):
        result = validator.validate(HEADERS, row(number="  "), 2, strict)

        assert isinstance(result, RowErr)
        assert "Internal article number is required" in result.messages

    def test_article_number_too_long(self, validator, strict):
        result = validator.validate(HEADERS, row(number="X" * 101), 2, strict)
        assert isinstance(result, RowErr)

    def test_column_count_mismatch(self, validator, strict):
        result = validator.validate(HEADERS, ["A-1", "10"], 7, strict)

        assert isinstance(result, RowErr)
        assert result.messages == ["Row 7 has 2 columns, expected 8"]

    def test_strict_rejects_invalid_shipping_class(self, validator, strict):
        result = validator.validate(HEADERS, row(shipping="9"), 2, strict)

        assert isinstance(result, RowErr)
        assert "Shipping class must be between 1 and 5" in result.messages

    def test_flexible_defaults_invalid_optional_fields(self, validator, flexible):
        result = validator.validate(HEADERS, row(shipping="9", delivery="0", deposit="-1"), 2, flexible)

        assert isinstance(result, RowOk)
        assert result.record.shipping_class == 1
        assert result.record.delivery_days == 1
        assert result.record.deposit == 0
        assert len(result.warnings) == 3

    def test_strict_requires_brand_when_column_present(self, validator, strict, flexible):
        assert isinstance(validator.validate(HEADERS, row(brand=""), 2, strict), RowErr)
        assert isinstance(validator.validate(HEADERS, row(brand=""), 2, flexible), RowOk)

    def test_long_title_truncated_outside_strict(self, validator, strict, flexible):
        long_title = "T" * 300

        assert isinstance(validator.validate(HEADERS, row(title=long_title), 2, strict), RowErr)
        result = validator.validate(HEADERS, row(title=long_title), 2, flexible)
        assert isinstance(result, RowOk)
        assert len(result.record.title) == 255

    def test_required_columns_only(self, validator, strict):
        headers = ["interne Artikelnummer", "Preis", "Zustand"]
        result = validator.validate(headers, ["B-7", "5", "0"], 2, strict)

        assert isinstance(result, RowOk)
        assert result.record.brand_and_part_number == ""
        assert result.record.title is None
        assert result.record.shipping_class == 1

    def test_stock_flag(self, validator, strict):
        headers = ["interne Artikelnummer", "Preis", "Zustand", "Lagerbestand"]

        result = validator.validate(headers, ["B-7", "5", "0", "ja"], 2, strict)
        assert result.record.in_stock is True

        result = validator.validate(headers, ["B-7", "5", "0", "?"], 2, strict)
        assert isinstance(result, RowOk)
        assert result.record.in_stock is None
        assert result.warnings

    def test_legacy_title_header(self, validator, strict):
        headers = ["interne Artikelnummer", "Preis", "Zustand", "tiltle"]
        result = validator.validate(headers, ["B-7", "5", "0", "Zündkerze"], 2, strict)

        assert result.record.title == "Zündkerze"
