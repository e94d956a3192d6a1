"""
Print service: renders price cards ("indicadores de precios") into a LETTER PDF.
Cards are laid out in a grid with dashed crop marks between rows and columns.
"""
import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from price_card_app.config import AppConfig
from price_card_app.enums import WarningKind
from price_card_app.errors import AssetLoadError, BackendWriteError
from price_card_app.services.card_layout import (
    CardGeometry,
    CardLayout,
    CardLayoutEngine,
    PageLayout,
    cell_position,
    crop_mark_lines,
    paginate,
)
from price_card_app.services.pdf_backend import CardCanvas, ImageSource
from price_card_app.services.spreadsheet_reader import build_records, read_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderWarning:
    kind: WarningKind
    record_index: int
    detail: str = ""


@dataclass
class RenderReport:
    total_records: int = 0
    pages: int = 0
    warnings: List[RenderWarning] = field(default_factory=list)
    output_path: Optional[str] = None

    def add(self, kind: WarningKind, record_index: int, detail: str = "") -> None:
        self.warnings.append(RenderWarning(kind, record_index, detail))

    @property
    def records_with_warnings(self) -> int:
        return len({w.record_index for w in self.warnings})

    def count(self, kind: WarningKind) -> int:
        return sum(1 for w in self.warnings if w.kind == kind)

    def summary(self) -> str:
        if not self.warnings:
            return f"{self.total_records} registros generados en {self.pages} página(s)."
        return (
            f"{self.records_with_warnings} de {self.total_records} registros con advertencias "
            f"({self.count(WarningKind.PRECIO_INVALIDO)} precio(s) inválido(s), "
            f"{self.count(WarningKind.FONDO_NO_CARGADO)} fondo(s) sin cargar)."
        )


def _draw_card(canvas: CardCanvas, layout: CardLayout) -> None:
    for run in layout.price_runs:
        canvas.draw_text(run.text, run.style, run.x, run.y)
    block = layout.name_block
    if block is not None:
        canvas.draw_text_block(block.text, block.style, block.x, block.y, block.width)


def _draw_background(
    canvas: CardCanvas,
    background: ImageSource,
    geometry: CardGeometry,
    layout_x: float,
    layout_y: float,
    record_index: int,
    report: RenderReport,
    strict: bool,
) -> None:
    try:
        canvas.draw_image(background, layout_x, layout_y, geometry.width, geometry.height)
    except AssetLoadError as exc:
        if strict:
            raise
        if not report.count(WarningKind.FONDO_NO_CARGADO):
            logger.warning("%s. Se dibuja un recuadro de reemplazo.", exc)
        else:
            logger.debug("Fondo no disponible para la tarjeta %d", record_index)
        report.add(WarningKind.FONDO_NO_CARGADO, record_index, str(exc))
        canvas.draw_placeholder(layout_x, layout_y, geometry.width, geometry.height)


def render_pages(
    pages: Sequence[PageLayout],
    engine: CardLayoutEngine,
    background: ImageSource,
    canvas: Optional[CardCanvas] = None,
    report: Optional[RenderReport] = None,
    strict: bool = False,
) -> Tuple[bytes, RenderReport]:
    """Dibuja cada página (fondos, textos y líneas de recorte) y devuelve los bytes del PDF."""
    canvas = canvas or CardCanvas(margin=engine.geometry.margin)
    report = report or RenderReport(total_records=sum(len(p.records) for p in pages))
    geometry = engine.geometry
    grid = engine.grid_for(canvas)

    for page in pages:
        canvas.add_page()
        for i, record in enumerate(page.records):
            column, row = cell_position(i, grid)
            layout = engine.layout_card(record, column, row, canvas)
            record_index = page.first_record + i
            _draw_background(canvas, background, geometry, layout.x, layout.y, record_index, report, strict)
            _draw_card(canvas, layout)

        for x1, y1, x2, y2 in crop_mark_lines(grid, geometry, canvas.page_width, canvas.page_height):
            canvas.draw_dashed_line(x1, y1, x2, y2)
        logger.debug("Página %d dibujada con %d tarjetas", page.index + 1, len(page.records))

    if canvas.page_count == 0:
        canvas.add_page()

    report.pages = canvas.page_count
    return canvas.output(), report


def _write_atomic(data: bytes, output_path: str) -> None:
    directory = os.path.dirname(os.path.abspath(output_path))
    try:
        fd, tmp_path = tempfile.mkstemp(suffix=".pdf", dir=directory)
    except OSError as exc:
        raise BackendWriteError(f"No se pudo escribir el PDF en {output_path}: {exc}", exc) from exc
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_path, output_path)
    except OSError as exc:
        try:
            os.remove(tmp_path)
        except OSError:
            pass
        raise BackendWriteError(f"No se pudo escribir el PDF en {output_path}: {exc}", exc) from exc


def generate_price_pdf(
    input_path: str,
    background_path: ImageSource,
    output_path: str,
    config: Optional[AppConfig] = None,
) -> RenderReport:
    """Lee la planilla, genera el PDF de indicadores y lo escribe en output_path."""
    config = config or AppConfig()
    rows = read_rows(input_path)
    records, invalid_prices = build_records(rows, config.currency_label, strict=config.strict)

    report = RenderReport(total_records=len(records))
    for idx in invalid_prices:
        report.add(WarningKind.PRECIO_INVALIDO, idx, "precio no numérico")
    if invalid_prices:
        logger.warning("%d fila(s) con precio no numérico: %s", len(invalid_prices), [i + 1 for i in invalid_prices])

    engine = CardLayoutEngine.from_config(config)
    canvas = CardCanvas(
        margin=engine.geometry.margin,
        font_regular_path=config.font_regular_path,
        font_bold_path=config.font_bold_path,
    )
    pages = paginate(records, engine.grid_for(canvas))
    data, report = render_pages(pages, engine, background_path, canvas=canvas, report=report, strict=config.strict)

    _write_atomic(data, output_path)
    report.output_path = output_path
    logger.info("PDF generado: %s (%s)", output_path, report.summary())
    return report
