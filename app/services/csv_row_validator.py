"""
Row-level validation and mapping of inventory CSV rows.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple

from app.models.import_options import ProcessingOptions
from app.models.import_results import InventoryRecord, RowErr, RowOk, RowResult

# Literal CSV header -> record field
HEADER_FIELDS: Dict[str, str] = {
    "interne Artikelnummer": "internal_article_number",
    "Preis": "price",
    "Zustand": "condition",
    "tiltle": "title",
    "Titel": "title",
    "Teilemarke,  Teilenummer": "brand_and_part_number",
    "Teilemarke, Teilenummer": "brand_and_part_number",
    "Pfand": "deposit",
    "Versandklasse": "shipping_class",
    "Lieferzeit": "delivery_days",
    "Lagerbestand": "in_stock",
}

CONDITION_RANGE = (0, 5)
SHIPPING_CLASS_RANGE = (1, 5)
MAX_ARTICLE_NUMBER_LENGTH = 100
MAX_TEXT_LENGTH = 255

TRUE_VALUES = {"1", "ja", "yes", "true", "y", "x"}
FALSE_VALUES = {"0", "nein", "no", "false", "n"}

_PRICE_CHARS = re.compile(r"[^0-9,.]")


def parse_price(value: str) -> Optional[Decimal]:
    """
    Parse a price written with comma or point as decimal separator.

    Everything except digits, commas and points is stripped first.
    Returns None when nothing numeric is left.
    """
    cleaned = _PRICE_CHARS.sub("", value or "").replace(",", ".")
    if not cleaned or cleaned.count(".") > 1 or cleaned == ".":
        return None
    try:
        return Decimal(cleaned).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def parse_int(value: str) -> Optional[int]:
    value = (value or "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = Decimal(value.replace(",", "."))
    except InvalidOperation:
        return None
    if number != number.to_integral_value():
        return None
    return int(number)


def parse_flag(value: str) -> Optional[bool]:
    value = (value or "").strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    return None


class RowValidator:
    """
    Turns one raw CSV row into an InventoryRecord or a list of messages.

    Validation has no side effects, so validating the same row twice yields
    the same result. Every check runs even after an earlier one failed.
    """

    def validate(self, headers: List[str], raw_row: List[str], row_number: int,
                 options: ProcessingOptions) -> RowResult:
        if len(raw_row) != len(headers):
            return RowErr([
                f"Row {row_number} has {len(raw_row)} columns, expected {len(headers)}"
            ])

        values = self._map_row(headers, raw_row)
        strict = options.validation_mode == "strict"
        errors: List[str] = []
        warnings: List[str] = []

        article_number = values.get("internal_article_number", "").strip()
        if not article_number:
            errors.append("Internal article number is required")
        elif len(article_number) > MAX_ARTICLE_NUMBER_LENGTH:
            errors.append(f"Internal article number may not exceed {MAX_ARTICLE_NUMBER_LENGTH} characters")

        raw_price = values.get("price", "").strip()
        price = parse_price(raw_price)
        if not raw_price:
            errors.append("Price is required")
        elif price is None:
            errors.append(f"Price must be numeric, got '{raw_price}'")
        elif raw_price.startswith("-"):
            errors.append("Price cannot be negative")

        condition = parse_int(values.get("condition", ""))
        if condition is None or not CONDITION_RANGE[0] <= condition <= CONDITION_RANGE[1]:
            errors.append(
                f"Condition must be an integer between {CONDITION_RANGE[0]} and {CONDITION_RANGE[1]}"
            )

        brand = values.get("brand_and_part_number", "").strip()
        if strict and "brand_and_part_number" in values and not brand:
            errors.append("Brand and part number is required")
        if len(brand) > MAX_TEXT_LENGTH:
            errors.append(f"Brand and part number may not exceed {MAX_TEXT_LENGTH} characters")

        title = values.get("title", "").strip() or None
        if title and len(title) > MAX_TEXT_LENGTH:
            if strict:
                errors.append(f"Title may not exceed {MAX_TEXT_LENGTH} characters")
            else:
                title = title[:MAX_TEXT_LENGTH]
                warnings.append("Title truncated")

        deposit = self._optional_int(
            values, "deposit", 0, lambda v: v >= 0, "Deposit must be a non-negative integer",
            strict, errors, warnings,
        )
        shipping_class = self._optional_int(
            values, "shipping_class", 1,
            lambda v: SHIPPING_CLASS_RANGE[0] <= v <= SHIPPING_CLASS_RANGE[1],
            f"Shipping class must be between {SHIPPING_CLASS_RANGE[0]} and {SHIPPING_CLASS_RANGE[1]}",
            strict, errors, warnings,
        )
        delivery_days = self._optional_int(
            values, "delivery_days", 1, lambda v: v >= 1, "Delivery time must be at least 1 day",
            strict, errors, warnings,
        )

        in_stock = None
        if values.get("in_stock", "").strip():
            in_stock = parse_flag(values["in_stock"])
            if in_stock is None:
                warnings.append(f"Unrecognised stock flag '{values['in_stock'].strip()}'")

        if errors:
            return RowErr(errors)

        return RowOk(
            record=InventoryRecord(
                internal_article_number=article_number,
                price=price,
                condition=condition,
                brand_and_part_number=brand,
                title=title,
                deposit=deposit,
                shipping_class=shipping_class,
                delivery_days=delivery_days,
                in_stock=in_stock,
            ),
            warnings=warnings,
        )

    def _map_row(self, headers: List[str], raw_row: List[str]) -> Dict[str, str]:
        pairs: List[Tuple[str, str]] = list(zip(headers, raw_row))
        mapped: Dict[str, str] = {}
        for header, value in pairs:
            name = HEADER_FIELDS.get(header)
            if name and name not in mapped:
                mapped[name] = value
        return mapped

    def _optional_int(self, values: Dict[str, str], name: str, default: int, check, message: str,
                      strict: bool, errors: List[str], warnings: List[str]) -> int:
        raw = values.get(name, "").strip()
        if not raw:
            return default

        value = parse_int(raw)
        if value is not None and check(value):
            return value

        if strict:
            errors.append(message)
        else:
            warnings.append(f"{message}; using default {default}")
        return default
