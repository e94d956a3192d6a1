"""
Lectura de la planilla de productos y precios.

Lee la primera hoja de un .xlsx/.xls (o un .csv), detecta las columnas
"producto" y "precio" y devuelve los registros normalizados.
"""
from __future__ import annotations

import logging
import math
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd

from price_card_app.errors import (
    EmptyInputError,
    InvalidHeadersError,
    UnparseablePriceError,
    UnreadableSpreadsheetError,
)
from price_card_app.services.text_normalizer import Record, normalize_with_status

logger = logging.getLogger(__name__)

PRODUCT_TOKEN = "producto"
PRICE_TOKEN = "precio"


def _cell_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return format(Decimal(repr(value)), "f")
    return str(value)


def read_rows(file_path) -> List[Dict[str, Any]]:
    """Filas de la primera hoja como diccionarios encabezado -> valor."""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"No existe el archivo: {file_path}")

    ext = path.suffix.lower()
    if ext not in (".csv", ".xlsx", ".xls"):
        raise ValueError(f"Formato no soportado: {ext}. Use .xlsx, .xls o .csv")

    try:
        if ext == ".csv":
            df = pd.read_csv(path, dtype=object)
        else:
            df = pd.read_excel(path, sheet_name=0, dtype=object)
    except Exception as exc:
        logger.error("No se pudo leer %s: %s", path.name, exc)
        raise UnreadableSpreadsheetError(path.name, exc) from exc

    df = df.dropna(how="all")
    df.columns = [str(col).strip() for col in df.columns]
    rows = [{k: _cell_to_text(v) for k, v in row.items()} for row in df.to_dict(orient="records")]
    logger.info("Leídas %d filas de %s", len(rows), path.name)
    return rows


def resolve_columns(headers: Sequence[str]) -> Tuple[str, str]:
    headers = list(headers)
    product_key = next((h for h in headers if PRODUCT_TOKEN in str(h).lower()), None)
    price_key = next((h for h in headers if PRICE_TOKEN in str(h).lower()), None)
    if product_key is None or price_key is None:
        if len(headers) == 2:
            product_key, price_key = headers
        else:
            raise InvalidHeadersError(headers)
    return product_key, price_key


def build_records(
    rows: Sequence[Dict[str, Any]], currency_label: str = "BS", strict: bool = False
) -> Tuple[List[Record], List[int]]:
    """
    Normaliza las filas. Devuelve los registros y los índices de las filas
    cuyo precio no pudo interpretarse.
    """
    if not rows:
        raise EmptyInputError()

    product_key, price_key = resolve_columns(list(rows[0].keys()))
    logger.debug("Columnas detectadas: producto=%r precio=%r", product_key, price_key)

    records: List[Record] = []
    invalid_prices: List[int] = []
    for idx, row in enumerate(rows):
        raw_price = row.get(price_key, "")
        record, price_ok = normalize_with_status(row.get(product_key, ""), raw_price, currency_label)
        if not price_ok:
            if strict:
                raise UnparseablePriceError(raw_price, idx)
            invalid_prices.append(idx)
        records.append(record)
    return records, invalid_prices
