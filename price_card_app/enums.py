"""
Enums centralizados para unidades, advertencias de render y alineación.
"""

from enum import Enum


class UnitToken(str, Enum):
    """Unidades de medida reconocidas en los nombres de producto."""
    GR = "GR"
    KG = "KG"
    LT = "LT"
    ML = "ML"


class WarningKind(str, Enum):
    """Fallas no fatales que degradan una tarjeta sin abortar el documento."""
    PRECIO_INVALIDO = "PRECIO_INVALIDO"
    FONDO_NO_CARGADO = "FONDO_NO_CARGADO"


class VerticalAlign(str, Enum):
    """Política de ubicación vertical del bloque precio + producto."""
    TOP = "top"
    CENTER = "center"


UNIT_TOKENS = tuple(unit.value for unit in UnitToken)
