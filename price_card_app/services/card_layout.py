"""
Maquetación de tarjetas de precio.

Calcula la grilla de tarjetas por página, reparte los registros en páginas y,
para cada tarjeta, busca el tamaño de fuente que hace entrar el precio y el
nombre del producto dentro del ancho disponible.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from price_card_app.enums import VerticalAlign
from price_card_app.services.pdf_backend import CardCanvas, TextStyle
from price_card_app.services.text_normalizer import Record

# Alto de línea admitido por cada punto de tamaño de fuente.
LINE_SIZE_RATIO = 1.2
CROP_MARK_OVERHANG = 5.0

MeasureFn = Callable[[str, int, float], float]


@dataclass(frozen=True)
class CardGeometry:
    width: float = 280.0
    height: float = 95.0
    gap_x: float = 20.0
    gap_y: float = 15.0
    margin: float = 15.0
    top_padding: float = 12.0

    @classmethod
    def from_config(cls, config) -> "CardGeometry":
        return cls(
            width=config.card_width,
            height=config.card_height,
            gap_x=config.card_gap_x,
            gap_y=config.card_gap_y,
            margin=config.card_margin,
            top_padding=config.card_top_padding,
        )


@dataclass(frozen=True)
class GridSpec:
    columns: int
    rows_per_page: int

    @property
    def cards_per_page(self) -> int:
        return self.columns * self.rows_per_page


@dataclass(frozen=True)
class FitSolution:
    font_size: int
    measured_height: float


@dataclass(frozen=True)
class PageLayout:
    index: int
    records: Tuple[Record, ...]
    first_record: int = 0


@dataclass(frozen=True)
class FieldStyle:
    max_size: int
    min_size: int
    max_lines: int
    bold: bool = False
    family: Optional[str] = None

    def text_style(self, size: float) -> TextStyle:
        return TextStyle(size=size, bold=self.bold, family=self.family)


DEFAULT_PRICE_STYLE = FieldStyle(max_size=30, min_size=12, max_lines=1, bold=True)
DEFAULT_NAME_STYLE = FieldStyle(max_size=14, min_size=6, max_lines=2, bold=False)


@dataclass(frozen=True)
class TextRun:
    text: str
    style: TextStyle
    x: float
    y: float


@dataclass(frozen=True)
class TextBlock:
    text: str
    style: TextStyle
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CardLayout:
    x: float
    y: float
    price_fit: FitSolution
    name_fit: FitSolution
    price_runs: Tuple[TextRun, ...]
    name_block: Optional[TextBlock]


def compute_grid(page_width: float, page_height: float, geometry: CardGeometry) -> GridSpec:
    columns = math.floor((page_width - 2 * geometry.margin + geometry.gap_x) / (geometry.width + geometry.gap_x))
    rows = math.floor((page_height - 2 * geometry.margin + geometry.gap_y) / (geometry.height + geometry.gap_y))
    return GridSpec(columns=int(columns), rows_per_page=int(rows))


def paginate(records: Sequence[Record], grid: GridSpec) -> List[PageLayout]:
    per_page = grid.cards_per_page
    if per_page <= 0:
        raise ValueError(f"La grilla no admite tarjetas: {grid}")
    pages: List[PageLayout] = []
    for index in range(math.ceil(len(records) / per_page)):
        start = index * per_page
        pages.append(PageLayout(index=index, records=tuple(records[start:start + per_page]), first_record=start))
    return pages


def cell_position(index: int, grid: GridSpec) -> Tuple[int, int]:
    """(columna, fila) del registro `index` dentro de su página."""
    return index % grid.columns, index // grid.columns


def cell_origin(column: int, row: int, geometry: CardGeometry) -> Tuple[float, float]:
    x = geometry.margin + column * (geometry.width + geometry.gap_x)
    y = geometry.margin + row * (geometry.height + geometry.gap_y)
    return x, y


def crop_mark_lines(
    grid: GridSpec, geometry: CardGeometry, page_width: float, page_height: float
) -> List[Tuple[float, float, float, float]]:
    """Segmentos (x1, y1, x2, y2) de las líneas de recorte entre columnas y filas."""
    lines = []
    for c in range(1, grid.columns):
        x = geometry.margin + c * (geometry.width + geometry.gap_x) - geometry.gap_x / 2
        lines.append((x, geometry.margin - CROP_MARK_OVERHANG, x, page_height - geometry.margin + CROP_MARK_OVERHANG))
    for r in range(1, grid.rows_per_page):
        y = geometry.margin + r * (geometry.height + geometry.gap_y) - geometry.gap_y / 2
        lines.append((geometry.margin - CROP_MARK_OVERHANG, y, page_width - geometry.margin + CROP_MARK_OVERHANG, y))
    return lines


def fit_text(
    text: str,
    max_font_size: int,
    min_font_size: int,
    max_line_multiplier: int,
    width_budget: float,
    measure: MeasureFn,
) -> FitSolution:
    """
    Busca el mayor tamaño entero cuyo alto no supere size * 1.2 * max_line_multiplier.

    Recorre de mayor a menor; si ningún tamaño entra, devuelve el mínimo con el
    alto que resulte (el desborde se acepta, no es un error).
    """
    for size in range(int(max_font_size), int(min_font_size) - 1, -1):
        height = measure(text, size, width_budget)
        if height <= size * LINE_SIZE_RATIO * max_line_multiplier:
            return FitSolution(font_size=size, measured_height=height)
    size = int(min_font_size)
    return FitSolution(font_size=size, measured_height=measure(text, size, width_budget))


def split_price(price: str) -> Tuple[str, str]:
    """'BS 1.307,96' -> ('BS 1.307,', '96')."""
    idx = price.rfind(",")
    if idx < 0:
        return price, ""
    return price[: idx + 1], price[idx + 1 :][:2]


class CardLayoutEngine:
    def __init__(
        self,
        geometry: CardGeometry,
        price_style: FieldStyle = DEFAULT_PRICE_STYLE,
        name_style: FieldStyle = DEFAULT_NAME_STYLE,
        padding_x: float = 10.0,
        vertical_align: str = VerticalAlign.TOP.value,
        name_spacing: float = -2.0,
        cents_delta: int = 8,
        min_cents_size: int = 8,
    ):
        self.geometry = geometry
        self.price_style = price_style
        self.name_style = name_style
        self.padding_x = padding_x
        self.vertical_align = VerticalAlign(vertical_align)
        self.name_spacing = name_spacing
        self.cents_delta = cents_delta
        self.min_cents_size = min_cents_size

    @classmethod
    def from_config(cls, config) -> "CardLayoutEngine":
        return cls(
            CardGeometry.from_config(config),
            vertical_align=config.vertical_align,
            name_spacing=config.name_spacing,
        )

    @property
    def text_width(self) -> float:
        return self.geometry.width - 2 * self.padding_x

    def grid_for(self, canvas: CardCanvas) -> GridSpec:
        return compute_grid(canvas.page_width, canvas.page_height, self.geometry)

    def fit_field(self, text: str, field: FieldStyle, canvas: CardCanvas) -> FitSolution:
        if not text:
            return FitSolution(font_size=field.max_size, measured_height=0.0)

        def measure(value: str, size: int, width: float) -> float:
            return canvas.measure_height(value, field.text_style(size), width)

        return fit_text(text, field.max_size, field.min_size, field.max_lines, self.text_width, measure)

    def cents_size(self, price_size: int) -> int:
        return max(price_size - self.cents_delta, self.min_cents_size)

    def layout_card(self, record: Record, column: int, row: int, canvas: CardCanvas) -> CardLayout:
        x, y = cell_origin(column, row, self.geometry)
        tx = x + self.padding_x
        tw = self.text_width

        price_fit = self.fit_field(record.price, self.price_style, canvas)
        name_fit = self.fit_field(record.product_name, self.name_style, canvas)

        spacing = self.name_spacing if record.price and record.product_name else 0.0
        if self.vertical_align is VerticalAlign.CENTER:
            total = price_fit.measured_height + spacing + name_fit.measured_height
            top = y + (self.geometry.height - total) / 2
        else:
            top = y + self.geometry.top_padding

        price_runs: Tuple[TextRun, ...] = ()
        if record.price:
            integer_part, cents = split_price(record.price)
            int_style = self.price_style.text_style(price_fit.font_size)
            cents_style = self.price_style.text_style(self.cents_size(price_fit.font_size))
            int_width = canvas.string_width(integer_part, int_style)
            cents_width = canvas.string_width(cents, cents_style) if cents else 0.0
            start_x = tx + max(0.0, (tw - int_width - cents_width) / 2)
            price_runs = (TextRun(integer_part, int_style, start_x, top),)
            if cents:
                price_runs += (TextRun(cents, cents_style, start_x + int_width, top),)

        name_block = None
        if record.product_name:
            name_y = top + price_fit.measured_height + spacing
            name_block = TextBlock(
                text=record.product_name,
                style=self.name_style.text_style(name_fit.font_size),
                x=tx,
                y=name_y,
                width=tw,
                height=name_fit.measured_height,
            )

        return CardLayout(
            x=x,
            y=y,
            price_fit=price_fit,
            name_fit=name_fit,
            price_runs=price_runs,
            name_block=name_block,
        )
