"""
Validation and data normalization utilities for extracted data.

Handles:
- Number parsing (currency symbols, thousands separators, European decimals)
- Date normalization to YYYY-MM-DD
- Text coercion for non-string scalars
"""

import logging
import re
from datetime import datetime
from typing import Any

from dateutil import parser as date_parser
from price_parser import Price

# Handle both package imports and standalone imports
try:
    from ...models import ExtractedItem, FieldType, SchemaField
except ImportError:
    from models import ExtractedItem, FieldType, SchemaField

from .exceptions import AIServiceError

logger = logging.getLogger(__name__)

_DEFAULT_A = datetime(2001, 1, 1)
_DEFAULT_B = datetime(2002, 2, 2)

# Minus sign before the first digit, or an accounting "(1,250.00)" form
_NEGATIVE_RE = re.compile(r"^(?:[^\d]*[-\u2212]|\(.*\)$)")


class ValidationResult:
    """Result of data validation."""

    def __init__(self):
        self.validated_data: dict[str, ExtractedItem] = {}
        self.warnings: list[str] = []


def parse_currency(value: Any) -> float | None:
    """
    Parse a currency string to float using price-parser.

    Handles international formats:
    - "$1,234.56", "€1.234,56", "1000 USD", "£500.00"
    - "1 234,50 zł" (Polish), "¥1,234" (Japanese)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not value:
        return None

    try:
        price = Price.fromstring(value)
        if price.amount_float is not None:
            # price-parser drops the sign
            if _NEGATIVE_RE.match(value):
                return -abs(price.amount_float)
            return price.amount_float

        # Fallback for plain numbers price-parser does not pick up
        cleaned = re.sub(r"[^\d.,\-]", "", value)
        if not cleaned or not re.search(r"\d", cleaned):
            return None
        if "," in cleaned and "." in cleaned:
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif "," in cleaned:
            parts = cleaned.split(",")
            if len(parts) == 2 and len(parts[1]) == 2:
                cleaned = cleaned.replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        return float(cleaned)

    except (ValueError, AttributeError):
        return None


def parse_date(value: Any) -> str | None:
    """
    Parse various date formats to YYYY-MM-DD.

    Returns None if parsing fails or the day, month or year is missing.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)

    value = value.strip()
    if not value:
        return None

    # ISO format (YYYY-MM-DD)
    if re.match(r"^\d{4}-\d{2}-\d{2}$", value):
        try:
            datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            return None
        return value

    # Slashes: US (MM/DD/YYYY) first, then European (DD/MM/YYYY)
    match = re.match(r"^(\d{1,2})/(\d{1,2})/(\d{4})$", value)
    if match:
        first, second, year = (int(g) for g in match.groups())
        for month, day in ((first, second), (second, first)):
            try:
                return datetime(year, month, day).strftime("%Y-%m-%d")
            except ValueError:
                continue
        return None

    # Dots: European (DD.MM.YYYY)
    match = re.match(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$", value)
    if match:
        day, month, year = (int(g) for g in match.groups())
        try:
            return datetime(year, month, day).strftime("%Y-%m-%d")
        except ValueError:
            return None

    # Written formats; dateutil fills missing parts from its default, so parse
    # twice with different defaults and reject anything that moved
    try:
        first = date_parser.parse(value, default=_DEFAULT_A)
        second = date_parser.parse(value, default=_DEFAULT_B)
    except (ValueError, OverflowError):
        return None
    if first.date() != second.date():
        logger.debug("Incomplete date rejected: %s", value)
        return None
    return first.strftime("%Y-%m-%d")


def _normalize_number(field: SchemaField, value: Any) -> int | float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value

    parsed = parse_currency(value)
    if parsed is None:
        raise AIServiceError(
            f"Field '{field.name}' has invalid number format: '{value}'"
        )
    return int(parsed) if parsed.is_integer() else parsed


def normalize_extracted_items(
    items: dict[str, ExtractedItem],
    fields: list[SchemaField],
) -> ValidationResult:
    """
    Normalize extracted values according to their field types.

    - number: strings are parsed to int/float; unparseable strings fail the
      extraction.
    - date: values are normalized to YYYY-MM-DD; unparseable values are
      kept as-is with a warning (prefer raw data over no data).
    - text: non-string scalars are converted to strings.

    Empty strings become null. Only fields from the schema are kept, in
    schema order.

    Raises:
        AIServiceError: If a number field holds a non-numeric value.
    """
    result = ValidationResult()

    for field in fields:
        item = items[field.name]
        value = item.value
        source = item.source or None

        if isinstance(value, str) and not value.strip():
            value = None

        if value is not None:
            if field.type == FieldType.NUMBER:
                value = _normalize_number(field, value)

            elif field.type == FieldType.DATE:
                parsed = parse_date(value)
                if parsed is not None:
                    value = parsed
                else:
                    result.warnings.append(
                        f"Field '{field.name}' has unrecognized date format: '{value}'"
                    )
                    value = str(value)

            elif not isinstance(value, str):
                value = str(value)

        logger.debug("Normalized field '%s': %r (source: %s)", field.name, value, source)
        result.validated_data[field.name] = ExtractedItem(value=value, source=source)

    return result
