import os
import unittest
from unittest import mock

from price_card_app.config import AppConfig, load_config
from price_card_app.services.card_layout import CardGeometry, CardLayoutEngine


class LoadConfigTests(unittest.TestCase):
    def _load(self, env):
        with mock.patch.dict(os.environ, env, clear=True), mock.patch("price_card_app.config.load_dotenv"):
            return load_config()

    def test_defaults(self):
        config = self._load({})
        self.assertEqual(config.currency_label, "BS")
        self.assertEqual((config.card_width, config.card_height), (280.0, 95.0))
        self.assertEqual(config.vertical_align, "top")
        self.assertFalse(config.strict)
        self.assertIsNone(config.telegram_token)

    def test_reads_environment(self):
        config = self._load(
            {
                "TELEGRAM_TOKEN": "123:abc",
                "CARD_WIDTH": "250",
                "CARD_TOP_PADDING": "15",
                "PRICE_CARD_NAME_SPACING": "-4,5",
                "PRICE_CARD_VERTICAL_ALIGN": "Center",
                "PRICE_CARD_STRICT": "true",
                "PRICE_CARD_CURRENCY": " USD ",
            }
        )
        self.assertEqual(config.telegram_token, "123:abc")
        self.assertEqual(config.card_width, 250.0)
        self.assertEqual(config.card_top_padding, 15.0)
        self.assertEqual(config.name_spacing, -4.5)
        self.assertEqual(config.vertical_align, "center")
        self.assertTrue(config.strict)
        self.assertEqual(config.currency_label, "USD")

    def test_invalid_values_fall_back_to_defaults(self):
        config = self._load({"CARD_WIDTH": "ancho", "CARD_HEIGHT": "-3", "PRICE_CARD_VERTICAL_ALIGN": "abajo"})
        self.assertEqual(config.card_width, 280.0)
        self.assertEqual(config.card_height, 95.0)
        self.assertEqual(config.vertical_align, "top")

    def test_geometry_from_config(self):
        config = AppConfig(card_width=200, card_gap_x=5, card_top_padding=15)
        engine = CardLayoutEngine.from_config(config)
        self.assertEqual(engine.geometry, CardGeometry(width=200, height=95, gap_x=5, gap_y=15, margin=15, top_padding=15))


if __name__ == "__main__":
    unittest.main()
