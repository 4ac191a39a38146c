"""
Value Coercion
==============

Converts raw supplier values to the datatype declared by a custom field.

Example inputs for ``coerce_number`` (separator policy "auto"):
- "9.99" -> 9.99
- "1,200" -> 1200 (comma followed by exactly three digits is a thousands separator)
- "9,99" -> 9.99 (otherwise a single comma is the decimal separator)
- "1.234,56 EUR" -> 1234.56 (right-most separator is the decimal one)
- "$1,234,567" -> 1234567
- "n/a" -> None

All functions are pure and idempotent: coercing an already coerced value
returns it unchanged.
"""

import json
import math
import re
from typing import Any, Literal

DecimalSeparator = Literal["auto", ".", ","]

TRUE_VALUES = frozenset({"true", "1", "yes", "y", "on"})
FALSE_VALUES = frozenset({"false", "0", "no", "n", "off"})

_NON_NUMERIC_RE = re.compile(r"[^0-9.,+\-]")
_THOUSANDS_GROUP_RE = re.compile(r"^[+\-]?\d{1,3}(,\d{3})+$")


def _normalize_separators(cleaned: str, decimal_separator: DecimalSeparator) -> str:
    """Rewrite ``cleaned`` so that '.' is the only (decimal) separator."""
    if decimal_separator == ".":
        return cleaned.replace(",", "")
    if decimal_separator == ",":
        return cleaned.replace(".", "").replace(",", ".")

    has_comma, has_dot = "," in cleaned, "." in cleaned
    if has_comma and has_dot:
        if cleaned.rfind(",") > cleaned.rfind("."):
            return cleaned.replace(".", "").replace(",", ".")
        return cleaned.replace(",", "")
    if has_comma:
        if cleaned.count(",") > 1 or _THOUSANDS_GROUP_RE.match(cleaned):
            return cleaned.replace(",", "")
        return cleaned.replace(",", ".")
    return cleaned


def coerce_number(value: Any, decimal_separator: DecimalSeparator = "auto") -> int | float | None:
    """
    Coerce a value to a finite number.

    Booleans are not numbers. Integral results come back as ``int`` so
    "1,200" and 1200 map to the same JSON value.

    Args:
        value: Raw value (string, number or None)
        decimal_separator: "auto", "." or ","

    Returns:
        int, float or None when the value holds no finite number
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value

    if not isinstance(value, str):
        return None

    cleaned = _NON_NUMERIC_RE.sub("", value)
    if not any(ch.isdigit() for ch in cleaned):
        return None

    normalized = _normalize_separators(cleaned, decimal_separator)
    try:
        number = float(normalized)
    except ValueError:
        return None

    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() and abs(number) < 2**53 else number


def coerce_boolean(value: Any) -> bool | None:
    """Coerce true/1/yes/y/on and false/0/no/n/off (case-insensitive); anything else is None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value == 1:
            return True
        if value == 0:
            return False
        return None

    token = str(value).strip().lower()
    if token in TRUE_VALUES:
        return True
    if token in FALSE_VALUES:
        return False
    return None


def coerce_json(value: Any) -> Any:
    """Keep structured values; parse strings that hold JSON documents."""
    if value is None or isinstance(value, (dict, list, bool, int, float)):
        return value

    text = str(value).strip()
    if text[:1] in ("{", "["):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


def coerce_text(value: Any) -> str | None:
    """Stringify scalars; structured values are rendered as compact JSON."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def coerce_value(
    value: Any,
    datatype: str,
    decimal_separator: DecimalSeparator = "auto",
) -> Any:
    """Coerce ``value`` according to a custom field datatype.

    Unknown datatypes and ``date`` are treated as text.
    """
    if datatype == "number":
        return coerce_number(value, decimal_separator)
    if datatype == "bool":
        return coerce_boolean(value)
    if datatype == "json":
        return coerce_json(value)
    return coerce_text(value)
