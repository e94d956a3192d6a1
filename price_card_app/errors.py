"""
Excepciones del generador de indicadores de precios.

Las fatales abortan la corrida antes de producir el PDF; las no fatales solo
se lanzan en modo estricto (en modo normal se registran en el RenderReport).
"""


class PriceCardError(Exception):
    """Base para todos los errores del generador."""


class EmptyInputError(PriceCardError):
    def __init__(self, message: str = "El archivo Excel está vacío."):
        super().__init__(message)


class InvalidHeadersError(PriceCardError):
    def __init__(self, headers=None):
        self.headers = list(headers or [])
        super().__init__(
            "Encabezados inválidos: se esperaban columnas 'producto' y 'precio' "
            f"(encontradas: {', '.join(str(h) for h in self.headers) or 'ninguna'})."
        )


class UnparseablePriceError(PriceCardError):
    def __init__(self, raw_value, index: int = None):
        self.raw_value = raw_value
        self.index = index
        where = f" en la fila {index + 1}" if index is not None else ""
        super().__init__(f"Precio no numérico{where}: {raw_value!r}")


class AssetLoadError(PriceCardError):
    def __init__(self, path, cause: Exception = None):
        self.path = path
        self.cause = cause
        super().__init__(f"No se pudo cargar la imagen del marco: {path}")


class BackendWriteError(PriceCardError):
    def __init__(self, message: str, cause: Exception = None):
        self.cause = cause
        super().__init__(message)


class UnreadableSpreadsheetError(PriceCardError):
    def __init__(self, path, cause: Exception = None):
        self.path = path
        self.cause = cause
        super().__init__(f"No se pudo leer la planilla {path}: {cause}")
