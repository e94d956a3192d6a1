import os
import shutil
import tempfile
import unittest
from unittest import mock

from openpyxl import Workbook
from PIL import Image

from price_card_app.config import AppConfig
from price_card_app.enums import WarningKind
from price_card_app.errors import AssetLoadError, BackendWriteError, EmptyInputError, InvalidHeadersError
from price_card_app.services.card_layout import CardGeometry, CardLayoutEngine, paginate
from price_card_app.services.pdf_backend import CardCanvas
from price_card_app.services.print_service import RenderReport, generate_price_pdf, render_pages
from price_card_app.services.text_normalizer import Record


class RecordingCanvas(CardCanvas):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.texts = []
        self.blocks = []
        self.images = 0
        self.placeholders = 0
        self.dashed = []

    def draw_text(self, text, style, x, y):
        self.texts.append(text)
        super().draw_text(text, style, x, y)

    def draw_text_block(self, text, style, x, y, width):
        self.blocks.append(text)
        super().draw_text_block(text, style, x, y, width)

    def draw_image(self, source, x, y, width, height):
        super().draw_image(source, x, y, width, height)
        self.images += 1

    def draw_placeholder(self, x, y, width, height):
        self.placeholders += 1
        super().draw_placeholder(x, y, width, height)

    def draw_dashed_line(self, x1, y1, x2, y2, **kwargs):
        self.dashed.append((x1, y1, x2, y2))
        super().draw_dashed_line(x1, y1, x2, y2, **kwargs)


class PrintServiceTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.background = os.path.join(self.tmpdir, "marco.png")
        Image.new("RGB", (56, 19), "white").save(self.background)
        self.engine = CardLayoutEngine(CardGeometry())

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _write_xlsx(self, rows, name="input.xlsx"):
        path = os.path.join(self.tmpdir, name)
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(row)
        wb.save(path)
        return path


class RenderPagesTests(PrintServiceTestCase):
    def _render(self, records, background, canvas=None):
        canvas = canvas or RecordingCanvas()
        pages = paginate(records, self.engine.grid_for(canvas))
        data, report = render_pages(pages, self.engine, background, canvas=canvas)
        return canvas, data, report

    def test_two_cards_one_page(self):
        records = [Record("ARROZ 500GR", "BS 25,50"), Record("HARINA 1KG", "BS 10,00")]
        canvas, data, report = self._render(records, self.background)

        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(report.pages, 1)
        self.assertEqual(canvas.images, 2)
        self.assertEqual(canvas.placeholders, 0)
        self.assertEqual(canvas.blocks, ["ARROZ 500GR", "HARINA 1KG"])
        self.assertEqual(canvas.texts, ["BS 25,", "50", "BS 10,", "00"])
        self.assertEqual(report.warnings, [])

    def test_crop_marks_per_page(self):
        canvas, _, _ = self._render([Record("A", "BS 1,00")] * 15, self.background)
        # 1 vertical + 6 horizontal per page, two pages
        self.assertEqual(len(canvas.dashed), 14)

    def test_paginates(self):
        records = [Record(f"PRODUCTO {i}", f"BS {i},00") for i in range(30)]
        canvas, _, report = self._render(records, self.background)
        self.assertEqual(report.pages, 3)
        self.assertEqual(canvas.page_count, 3)
        self.assertEqual(canvas.blocks, [r.product_name for r in records])

    def test_missing_background_draws_placeholders(self):
        missing = os.path.join(self.tmpdir, "no-existe.png")
        records = [Record("ARROZ 500GR", "BS 25,50"), Record("HARINA 1KG", "BS 10,00")]
        with self.assertLogs("price_card_app.services.print_service", level="WARNING") as captured:
            canvas, data, report = self._render(records, missing)

        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(canvas.placeholders, 2)
        self.assertEqual(canvas.blocks, ["ARROZ 500GR", "HARINA 1KG"])
        self.assertEqual(report.count(WarningKind.FONDO_NO_CARGADO), 2)
        self.assertEqual(len(captured.output), 1)
        self.assertIn("2 de 2 registros con advertencias", report.summary())

    def test_invalid_background_bytes(self):
        canvas, data, report = self._render([Record("SAL", "BS 1,00")], b"not an image")
        self.assertEqual(canvas.placeholders, 1)
        self.assertEqual(report.count(WarningKind.FONDO_NO_CARGADO), 1)

    def test_background_as_bytes(self):
        with open(self.background, "rb") as handle:
            raw = handle.read()
        canvas, _, report = self._render([Record("SAL", "BS 1,00")], raw)
        self.assertEqual(canvas.images, 1)
        self.assertEqual(report.warnings, [])

    def test_strict_mode_raises_on_missing_asset(self):
        pages = paginate([Record("SAL", "BS 1,00")], self.engine.grid_for(CardCanvas()))
        with self.assertRaises(AssetLoadError):
            render_pages(pages, self.engine, None, strict=True)

    def test_empty_price_still_renders_name(self):
        canvas, _, _ = self._render([Record("AZUCAR", "")], self.background)
        self.assertEqual(canvas.texts, [])
        self.assertEqual(canvas.blocks, ["AZUCAR"])

    def test_no_pages_still_produces_a_valid_document(self):
        data, report = render_pages([], self.engine, self.background)
        self.assertTrue(data.startswith(b"%PDF"))
        self.assertEqual(report.pages, 1)

    def test_output_failure_is_wrapped(self):
        canvas = CardCanvas()
        canvas.add_page()
        with mock.patch.object(canvas.pdf, "output", side_effect=RuntimeError("disk full")):
            with self.assertRaises(BackendWriteError):
                canvas.output()


class GeneratePricePdfTests(PrintServiceTestCase):
    def test_end_to_end(self):
        input_path = self._write_xlsx([["Producto", "Precio"], ["Arroz 500gr", 25.5], ["Harina 1 kg", 10]])
        output_path = os.path.join(self.tmpdir, "salida.pdf")

        canvases = []

        def recording_canvas(**kwargs):
            canvases.append(RecordingCanvas(**kwargs))
            return canvases[-1]

        with mock.patch("price_card_app.services.print_service.CardCanvas", side_effect=recording_canvas):
            report = generate_price_pdf(input_path, self.background, output_path)

        self.assertIsInstance(report, RenderReport)
        canvas = canvases[0]
        self.assertEqual(canvas.blocks, ["ARROZ 500GR", "HARINA 1KG"])
        self.assertEqual(canvas.texts, ["BS 25,", "50", "BS 10,", "00"])
        self.assertEqual(canvas.images, 2)
        self.assertEqual(report.total_records, 2)
        self.assertEqual(report.pages, 1)
        self.assertEqual(report.warnings, [])
        with open(output_path, "rb") as handle:
            self.assertTrue(handle.read().startswith(b"%PDF"))
        self.assertEqual(sorted(os.listdir(self.tmpdir)), ["input.xlsx", "marco.png", "salida.pdf"])

    def test_unparseable_price_is_counted(self):
        input_path = self._write_xlsx([["producto", "precio"], ["Sal", "consultar"], ["Pan", "3"]])
        output_path = os.path.join(self.tmpdir, "salida.pdf")
        with self.assertLogs("price_card_app.services.print_service", level="WARNING"):
            report = generate_price_pdf(input_path, self.background, output_path)
        self.assertEqual(report.count(WarningKind.PRECIO_INVALIDO), 1)
        self.assertEqual(report.warnings[0].record_index, 0)
        self.assertTrue(os.path.exists(output_path))

    def test_empty_input_produces_no_file(self):
        input_path = self._write_xlsx([["producto", "precio"]])
        output_path = os.path.join(self.tmpdir, "salida.pdf")
        with self.assertRaises(EmptyInputError):
            generate_price_pdf(input_path, self.background, output_path)
        self.assertFalse(os.path.exists(output_path))

    def test_invalid_headers_produces_no_file(self):
        input_path = self._write_xlsx([["a", "b", "c"], ["x", "1", "z"]])
        output_path = os.path.join(self.tmpdir, "salida.pdf")
        with self.assertRaises(InvalidHeadersError):
            generate_price_pdf(input_path, self.background, output_path)
        self.assertFalse(os.path.exists(output_path))

    def test_unwritable_destination(self):
        input_path = self._write_xlsx([["producto", "precio"], ["Sal", "1"]])
        output_path = os.path.join(self.tmpdir, "no", "existe", "salida.pdf")
        with self.assertRaises(BackendWriteError):
            generate_price_pdf(input_path, self.background, output_path)

    def test_config_geometry_is_used(self):
        input_path = self._write_xlsx([["producto", "precio"]] + [[f"P{i}", i] for i in range(6)])
        output_path = os.path.join(self.tmpdir, "salida.pdf")
        config = AppConfig(card_width=500, card_height=300)
        report = generate_price_pdf(input_path, self.background, output_path, config)
        # one column, two rows per LETTER page
        self.assertEqual(report.pages, 3)


if __name__ == "__main__":
    unittest.main()
