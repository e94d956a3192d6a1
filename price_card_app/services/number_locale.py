from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


_PRICE_JUNK_RE = re.compile(r"[^\d,.\-]")
# Punto seguido de exactamente tres dígitos y luego separador o fin: miles.
_THOUSANDS_DOT_RE = re.compile(r"\.(?=\d{3}(?:[.,]|$))")
_DOT_THOUSANDS_COMMA_DECIMAL_RE = re.compile(r"^\d+\.\d+,\d+$")


def _to_decimal(text: str) -> Optional[Decimal]:
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def _quantize(value: Decimal, decimals: int) -> Decimal:
    safe_decimals = max(int(decimals), 0)
    quantum = Decimal(1).scaleb(-safe_decimals)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def _group_thousands(integer_part: str) -> str:
    sign = ""
    digits = integer_part
    if digits.startswith("-"):
        sign = "-"
        digits = digits[1:]
    if not digits:
        return f"{sign}0"
    chunks = []
    while digits:
        chunks.append(digits[-3:])
        digits = digits[:-3]
    return sign + ".".join(reversed(chunks))


def parse_price_number(value: Any) -> Optional[Decimal]:
    """Interpreta un precio ingresado con puntos de miles y coma decimal."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr da el decimal más corto; un float nunca lleva puntos de miles
        return Decimal(repr(value)) if math.isfinite(value) else None
    if value is None:
        return None

    cleaned = _PRICE_JUNK_RE.sub("", str(value))
    cleaned = _THOUSANDS_DOT_RE.sub("", cleaned)
    cleaned = cleaned.replace(",", ".")
    if not cleaned:
        return None
    return _to_decimal(cleaned)


def parse_quantity(text: str) -> Optional[Decimal]:
    """Interpreta la cantidad que acompaña a una unidad (ej. '1.500,50')."""
    raw = str(text or "").strip()
    if not raw:
        return None
    if _DOT_THOUSANDS_COMMA_DECIMAL_RE.match(raw):
        normalized = raw.replace(".", "").replace(",", ".")
    else:
        normalized = _THOUSANDS_DOT_RE.sub("", raw).replace(",", ".")
    return _to_decimal(normalized)


def format_quantity(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    rendered = f"{_quantize(value, 2):.2f}"
    return rendered.rstrip("0").rstrip(".")


def format_decimal(value: Decimal, decimals: int = 2) -> str:
    safe_decimals = max(int(decimals), 0)
    quantized = _quantize(value, safe_decimals)
    sign = "-" if quantized < 0 else ""
    absolute = -quantized if quantized < 0 else quantized
    raw = f"{absolute:.{safe_decimals}f}"
    integer_part, dot, fraction_part = raw.partition(".")
    grouped = _group_thousands(integer_part)

    if safe_decimals == 0:
        return f"{sign}{grouped}"
    if not dot:
        fraction_part = "0" * safe_decimals
    return f"{sign}{grouped},{fraction_part}"


def format_price(value: Any) -> str:
    """
    Formatea un precio como '1.307,96'. Devuelve '' si no es numérico.
    """
    parsed = parse_price_number(value)
    if parsed is None:
        return ""
    return format_decimal(parsed, decimals=2)


def display_price(value: Any, currency_label: str = "BS") -> str:
    formatted = format_price(value)
    if not formatted:
        return ""
    label = str(currency_label or "").strip()
    return f"{label} {formatted}" if label else formatted
