"""
Adaptador sobre FPDF para dibujar tarjetas.

FPDF guarda fuente, tamaño y colores como estado mutable del documento. Este
adaptador recibe el estilo explícito en cada medición o dibujo y lo aplica
antes de la llamada, de modo que ninguna operación depende del estado que haya
dejado la anterior. Usar un CardCanvas por documento.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from fpdf import FPDF
from fpdf.enums import MethodReturnValue, XPos, YPos

from price_card_app.errors import AssetLoadError, BackendWriteError

logger = logging.getLogger(__name__)

COLOR_TEXT = (0, 0, 0)
COLOR_WARNING = (255, 0, 0)
COLOR_CROP_MARK = (153, 153, 153)  # #999
# Alto de una línea de texto respecto del tamaño de fuente.
LINE_HEIGHT_RATIO = 1.15
DEFAULT_FAMILY = "helvetica"
CUSTOM_FAMILY = "arial"

ImageSource = Union[str, bytes, None]


@dataclass(frozen=True)
class TextStyle:
    size: float
    bold: bool = False
    family: Optional[str] = None
    color: Tuple[int, int, int] = COLOR_TEXT

    def with_size(self, size: float) -> "TextStyle":
        return TextStyle(size=size, bold=self.bold, family=self.family, color=self.color)


class CardCanvas:
    """Superficie de dibujo de un único documento (unidad: puntos)."""

    def __init__(
        self,
        page_format: str = "letter",
        margin: float = 15.0,
        font_regular_path: Optional[str] = None,
        font_bold_path: Optional[str] = None,
    ):
        self.pdf = FPDF(orientation="P", unit="pt", format=page_format)
        self.pdf.set_margins(margin, margin, margin)
        self.pdf.set_auto_page_break(False)
        self.pdf.c_margin = 0
        self.default_family = DEFAULT_FAMILY
        self._pages = 0
        self._register_fonts(font_regular_path, font_bold_path)

    def _register_fonts(self, regular: Optional[str], bold: Optional[str]) -> None:
        if not regular:
            return
        try:
            self.pdf.add_font(CUSTOM_FAMILY, "", regular)
            self.pdf.add_font(CUSTOM_FAMILY, "B", bold or regular)
        except Exception as exc:
            logger.warning("No se pudo registrar la fuente %s, se usa %s: %s", regular, DEFAULT_FAMILY, exc)
            return
        self.default_family = CUSTOM_FAMILY

    @property
    def page_width(self) -> float:
        return self.pdf.w

    @property
    def page_height(self) -> float:
        return self.pdf.h

    @property
    def page_count(self) -> int:
        return self._pages

    def add_page(self) -> None:
        self.pdf.add_page()
        self._pages += 1

    def _apply(self, style: TextStyle) -> None:
        self.pdf.set_font(style.family or self.default_family, "B" if style.bold else "", style.size)
        self.pdf.set_text_color(*style.color)

    def line_height(self, style: TextStyle) -> float:
        return style.size * LINE_HEIGHT_RATIO

    def string_width(self, text: str, style: TextStyle) -> float:
        self._apply(style)
        return self.pdf.get_string_width(text)

    def wrap_lines(self, text: str, style: TextStyle, width: float) -> List[str]:
        self._apply(style)
        return self.pdf.multi_cell(
            width,
            self.line_height(style),
            text,
            align="C",
            dry_run=True,
            output=MethodReturnValue.LINES,
        )

    def measure_height(self, text: str, style: TextStyle, width: float) -> float:
        """Alto del texto ajustado al ancho dado, con el estilo dado."""
        if not text:
            return 0.0
        return len(self.wrap_lines(text, style, width)) * self.line_height(style)

    def draw_text(self, text: str, style: TextStyle, x: float, y: float) -> None:
        """Dibuja una línea cuyo borde superior queda en y."""
        self._apply(style)
        self.pdf.set_xy(x, y)
        self.pdf.cell(self.pdf.get_string_width(text), style.size, text, new_x=XPos.RIGHT, new_y=YPos.TOP)

    def draw_text_block(self, text: str, style: TextStyle, x: float, y: float, width: float) -> None:
        """Dibuja texto multilínea centrado dentro del ancho dado."""
        self._apply(style)
        self.pdf.set_xy(x, y)
        self.pdf.multi_cell(
            width,
            self.line_height(style),
            text,
            align="C",
            new_x=XPos.LEFT,
            new_y=YPos.NEXT,
        )

    def draw_image(self, source: ImageSource, x: float, y: float, width: float, height: float) -> None:
        if source is None or source == "" or source == b"":
            raise AssetLoadError(source)
        image: Any = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        try:
            self.pdf.image(image, x=x, y=y, w=width, h=height)
        except Exception as exc:
            raise AssetLoadError(source if isinstance(source, str) else "<bytes>", exc) from exc

    def draw_placeholder(self, x: float, y: float, width: float, height: float) -> None:
        self.pdf.set_line_width(1)
        self.pdf.set_draw_color(*COLOR_WARNING)
        self.pdf.rect(x, y, width, height, style="D")

    def draw_dashed_line(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        dash: float = 5,
        gap: float = 5,
        line_width: float = 0.5,
        color: Tuple[int, int, int] = COLOR_CROP_MARK,
    ) -> None:
        self.pdf.set_line_width(line_width)
        self.pdf.set_draw_color(*color)
        self.pdf.set_dash_pattern(dash=dash, gap=gap)
        try:
            self.pdf.line(x1, y1, x2, y2)
        finally:
            self.pdf.set_dash_pattern()

    def output(self) -> bytes:
        try:
            return bytes(self.pdf.output())
        except Exception as exc:
            raise BackendWriteError(f"No se pudo finalizar el PDF: {exc}", exc) from exc
