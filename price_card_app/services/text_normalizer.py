"""
Limpieza de los textos de cada fila antes de maquetar las tarjetas.

Todas las funciones son puras: la misma entrada produce siempre la misma salida.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Tuple

from price_card_app.enums import UNIT_TOKENS
from price_card_app.services.number_locale import display_price, format_quantity, parse_quantity


_UNIT_RE = re.compile(
    r"(\d+(?:[.,]\d+)*)\s*(" + "|".join(UNIT_TOKENS) + r")\b",
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r"\s+")

# fpdf core fonts are latin-1 only
_REPLACEMENTS = {
    "—": "-",
    "–": "-",
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
    "…": "...",
}


@dataclass(frozen=True)
class Record:
    product_name: str
    price: str


def _sanitize(text: str) -> str:
    if not text:
        return ""
    for k, v in _REPLACEMENTS.items():
        text = text.replace(k, v)
    return text.encode("latin-1", "replace").decode("latin-1")


def _replace_unit(match: "re.Match[str]") -> str:
    quantity = parse_quantity(match.group(1))
    if quantity is None:
        return match.group(0)
    return f"{format_quantity(quantity)}{match.group(2).upper()}"


def normalize_units_in_name(text: Any) -> str:
    """
    Unifica las cantidades con unidad: '1.500,50 kg' -> '1500.5KG', '500.00GR' -> '500GR'.
    """
    cleaned = _UNIT_RE.sub(_replace_unit, str(text if text is not None else ""))
    return cleaned.upper()


def normalize_product_name(raw_name: Any) -> str:
    name = normalize_units_in_name(raw_name)
    name = _WHITESPACE_RE.sub(" ", name).strip()
    return _sanitize(name)


def normalize_with_status(raw_name: Any, raw_price: Any, currency_label: str = "BS") -> Tuple[Record, bool]:
    """Como normalize(), pero indica además si el precio pudo interpretarse."""
    price = display_price(raw_price, currency_label)
    record = Record(product_name=normalize_product_name(raw_name), price=_sanitize(price.upper()))
    return record, bool(price)


def normalize(raw_name: Any, raw_price: Any, currency_label: str = "BS") -> Record:
    record, _ = normalize_with_status(raw_name, raw_price, currency_label)
    return record
