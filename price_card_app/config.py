import os
import tempfile
from dataclasses import dataclass

from dotenv import load_dotenv

from price_card_app.enums import VerticalAlign


@dataclass(frozen=True)
class AppConfig:
    telegram_token: str = None
    temp_dir: str = tempfile.gettempdir()
    background_path: str = None
    currency_label: str = "BS"
    card_width: float = 280.0
    card_height: float = 95.0
    card_gap_x: float = 20.0
    card_gap_y: float = 15.0
    card_margin: float = 15.0
    card_top_padding: float = 12.0
    vertical_align: str = "top"
    name_spacing: float = -2.0
    strict: bool = False
    font_regular_path: str = None
    font_bold_path: str = None
    log_level: str = "INFO"


VERTICAL_ALIGN_CHOICES = tuple(v.value for v in VerticalAlign)


def _read_float_env(name: str, default: float, *, min_value: float = None) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.replace(",", "."))
    except ValueError:
        return default
    if min_value is not None and value < min_value:
        return default
    return value


def _read_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "si", "sí", "yes")


def _read_choice_env(name: str, default: str, choices) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


def load_config() -> AppConfig:
    load_dotenv()
    defaults = AppConfig()
    return AppConfig(
        telegram_token=os.getenv("TELEGRAM_TOKEN"),
        temp_dir=os.getenv("PRICE_CARD_TEMP_DIR") or defaults.temp_dir,
        background_path=os.getenv("PRICE_CARD_BACKGROUND"),
        currency_label=(os.getenv("PRICE_CARD_CURRENCY") or defaults.currency_label).strip(),
        card_width=_read_float_env("CARD_WIDTH", defaults.card_width, min_value=1),
        card_height=_read_float_env("CARD_HEIGHT", defaults.card_height, min_value=1),
        card_gap_x=_read_float_env("CARD_GAP_X", defaults.card_gap_x, min_value=0),
        card_gap_y=_read_float_env("CARD_GAP_Y", defaults.card_gap_y, min_value=0),
        card_margin=_read_float_env("CARD_MARGIN", defaults.card_margin, min_value=0),
        card_top_padding=_read_float_env("CARD_TOP_PADDING", defaults.card_top_padding, min_value=0),
        vertical_align=_read_choice_env("PRICE_CARD_VERTICAL_ALIGN", defaults.vertical_align, VERTICAL_ALIGN_CHOICES),
        name_spacing=_read_float_env("PRICE_CARD_NAME_SPACING", defaults.name_spacing),
        strict=_read_bool_env("PRICE_CARD_STRICT", defaults.strict),
        font_regular_path=os.getenv("PRICE_CARD_FONT_REGULAR"),
        font_bold_path=os.getenv("PRICE_CARD_FONT_BOLD"),
        log_level=(os.getenv("PRICE_CARD_LOG_LEVEL") or defaults.log_level).strip().upper(),
    )
