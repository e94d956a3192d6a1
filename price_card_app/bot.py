"""
Telegram bot: recibe la planilla de productos y devuelve el PDF de indicadores.

Usa la Bot API por HTTPS con long polling (getUpdates). Cada chat escribe en
rutas temporales propias (input_<chat_id>.xlsx / output_<chat_id>.pdf); dos
pedidos simultáneos del mismo chat comparten esas rutas y no se protegen.
"""
import json
import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from price_card_app.config import AppConfig
from price_card_app.errors import PriceCardError
from price_card_app.services.print_service import generate_price_pdf

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"
FILE_URL = "https://api.telegram.org/file/bot{token}/{path}"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ACTION_GENERATE = "GENERATE"
ACTION_HELP = "HELP"

MSG_WELCOME = "👋 Soy el Bot de Generador de Indicadores de precios. Selecciona una opción:"
MSG_HELP = (
    '📖 *Ayuda*: Presiona "Generar indicadores" para comenzar. '
    'Luego, envíame el archivo Excel con las columnas "producto" y "precio".'
)
MSG_ASK_FILE = '📂 Por favor, envía un archivo Excel (.xlsx) con las columnas "producto" y "precio".'
MSG_NOT_EXCEL = "❌ Ese no es un archivo Excel. Por favor, envía un archivo `.xlsx`."
MSG_PROCESSING = "⏳ Procesando tu archivo Excel... Esto puede tardar un momento."
MSG_DONE = "¡Aquí tienes tus indicadores de precios! ✨"
MSG_ERROR = (
    "❌ Ocurrió un error al procesar tu archivo. "
    'Asegúrate de que las columnas se llamen "producto" y "precio".'
)


class TelegramApiError(PriceCardError):
    pass


def get_timestamp_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"indicador-precios-{now.strftime('%Y-%m-%d_%H-%M')}.pdf"


def is_excel_document(document: Dict[str, Any]) -> bool:
    mime = document.get("mime_type") or ""
    name = str(document.get("file_name") or "").lower()
    return mime == XLSX_MIME or name.endswith(".xlsx")


class TelegramClient:
    def __init__(self, token: str, session: Optional[requests.Session] = None, timeout: int = 30):
        if not token:
            raise TelegramApiError("Falta TELEGRAM_TOKEN.")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _call(self, method: str, data: Optional[Dict[str, Any]] = None, files=None, timeout: Optional[int] = None):
        url = API_URL.format(token=self.token, method=method)
        try:
            response = self.session.post(url, data=data or {}, files=files, timeout=timeout or self.timeout)
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise TelegramApiError(f"Error llamando a {method}: {exc}") from exc
        if not payload.get("ok"):
            raise TelegramApiError(f"{method} falló: {payload.get('description', 'sin detalle')}")
        return payload.get("result")

    def get_updates(self, offset: Optional[int] = None, poll_timeout: int = 25) -> List[Dict[str, Any]]:
        data = {"timeout": poll_timeout}
        if offset is not None:
            data["offset"] = offset
        return self._call("getUpdates", data, timeout=poll_timeout + self.timeout) or []

    def send_message(self, chat_id, text: str, keyboard=None, parse_mode: Optional[str] = None):
        data: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if keyboard:
            data["reply_markup"] = json.dumps({"inline_keyboard": keyboard})
        if parse_mode:
            data["parse_mode"] = parse_mode
        return self._call("sendMessage", data)

    def answer_callback(self, callback_id: str):
        return self._call("answerCallbackQuery", {"callback_query_id": callback_id})

    def file_url(self, file_id: str) -> str:
        result = self._call("getFile", {"file_id": file_id})
        return FILE_URL.format(token=self.token, path=result["file_path"])

    def download(self, url: str, dest: str) -> None:
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(dest, "wb") as handle:
                    for chunk in response.iter_content(chunk_size=64 * 1024):
                        handle.write(chunk)
        except requests.RequestException as exc:
            if os.path.exists(dest):
                os.remove(dest)
            raise TelegramApiError(f"No se pudo descargar el archivo: {exc}") from exc

    def send_document(self, chat_id, path: str, filename: str, caption: str = ""):
        with open(path, "rb") as handle:
            files = {"document": (filename, handle, "application/pdf")}
            return self._call("sendDocument", {"chat_id": chat_id, "caption": caption}, files=files)


class PriceCardBot:
    def __init__(self, client: TelegramClient, config: AppConfig, background_path: Optional[str] = None):
        self.client = client
        self.config = config
        self.background_path = background_path or config.background_path
        self._offset: Optional[int] = None

    def handle_update(self, update: Dict[str, Any]) -> None:
        if "callback_query" in update:
            self._on_callback(update["callback_query"])
            return
        message = update.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        if chat_id is None:
            return
        if "document" in message:
            self._on_document(chat_id, message["document"])
        elif "text" in message:
            self._send_menu(chat_id)

    def _send_menu(self, chat_id) -> None:
        keyboard = [
            [{"text": "Generar indicadores", "callback_data": ACTION_GENERATE}],
            [{"text": "Ayuda", "callback_data": ACTION_HELP}],
        ]
        self.client.send_message(chat_id, MSG_WELCOME, keyboard=keyboard)

    def _on_callback(self, query: Dict[str, Any]) -> None:
        self.client.answer_callback(query["id"])
        chat_id = ((query.get("message") or {}).get("chat") or {}).get("id")
        if chat_id is None:
            return
        action = query.get("data")
        if action == ACTION_HELP:
            self.client.send_message(chat_id, MSG_HELP, parse_mode="Markdown")
        elif action == ACTION_GENERATE:
            self.client.send_message(chat_id, MSG_ASK_FILE)

    def _on_document(self, chat_id, document: Dict[str, Any]) -> None:
        if not is_excel_document(document):
            self.client.send_message(chat_id, MSG_NOT_EXCEL)
            return

        excel_path = os.path.join(self.config.temp_dir, f"input_{chat_id}.xlsx")
        output_path = os.path.join(self.config.temp_dir, f"output_{chat_id}.pdf")
        try:
            self.client.send_message(chat_id, MSG_PROCESSING)
            self.client.download(self.client.file_url(document["file_id"]), excel_path)
            report = generate_price_pdf(excel_path, self.background_path, output_path, self.config)
            caption = MSG_DONE if not report.warnings else f"{MSG_DONE}\n⚠️ {report.summary()}"
            self.client.send_document(chat_id, output_path, get_timestamp_filename(), caption)
        except Exception as exc:
            logger.error("Error al procesar documento del chat %s: %s", chat_id, exc, exc_info=True)
            self.client.send_message(chat_id, MSG_ERROR)
        finally:
            for path in (excel_path, output_path):
                if os.path.exists(path):
                    os.remove(path)

    def poll_once(self) -> int:
        updates = self.client.get_updates(offset=self._offset)
        for update in updates:
            self._offset = update["update_id"] + 1
            try:
                self.handle_update(update)
            except Exception as exc:
                logger.error("Error al manejar el update %s: %s", update.get("update_id"), exc, exc_info=True)
        return len(updates)

    def run_polling(self, retry_delay: float = 5.0) -> None:
        logger.info("Bot iniciado, esperando mensajes...")
        while True:
            try:
                self.poll_once()
            except TelegramApiError as exc:
                logger.warning("Fallo de polling, reintento en %.0fs: %s", retry_delay, exc)
                time.sleep(retry_delay)
