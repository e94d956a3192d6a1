from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from price_card_app.config import load_config
from price_card_app.errors import PriceCardError
from price_card_app.logging_setup import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="price-cards",
        description="Genera un PDF de indicadores de precios a partir de un Excel con columnas producto y precio.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log en nivel DEBUG.")
    sub = parser.add_subparsers(dest="command")

    gen = sub.add_parser("generate", help="Genera el PDF (comando por defecto).")
    gen.add_argument("input", help="Archivo .xlsx/.xls/.csv de entrada.")
    gen.add_argument("background", help="Imagen de fondo (marco) de cada tarjeta.")
    gen.add_argument("output", help="Ruta del PDF de salida.")
    gen.add_argument("--strict", action="store_true", help="Precios inválidos o fondo faltante abortan la generación.")
    gen.add_argument("--center", action="store_true", help="Centra verticalmente precio + producto en la tarjeta.")
    gen.add_argument("--currency", help="Etiqueta de moneda (por defecto BS).")

    sub.add_parser("bot", help="Inicia el bot de Telegram (long polling).")
    return parser


def _normalize_argv(argv: List[str]) -> List[str]:
    # <input> <marco> <output> sin subcomando equivale a generate
    commands = {"generate", "bot", "-h", "--help"}
    first = next((a for a in argv if a not in ("-v", "--verbose")), None)
    if first is not None and first not in commands:
        idx = argv.index(first)
        return argv[:idx] + ["generate"] + argv[idx:]
    return argv


def _run_generate(args, config) -> int:
    from price_card_app.services.print_service import generate_price_pdf

    overrides = {}
    if args.strict:
        overrides["strict"] = True
    if args.center:
        overrides["vertical_align"] = "center"
    if args.currency:
        overrides["currency_label"] = args.currency.strip()
    config = replace(config, **overrides)

    try:
        report = generate_price_pdf(args.input, args.background, args.output, config)
    except (PriceCardError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"PDF generado: {args.output}")
    if report.warnings:
        print(report.summary(), file=sys.stderr)
    return 0


def _run_bot(config) -> int:
    from price_card_app.bot import PriceCardBot, TelegramClient

    try:
        client = TelegramClient(config.telegram_token)
    except PriceCardError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    PriceCardBot(client, config).run_polling()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = _normalize_argv(list(sys.argv[1:] if argv is None else argv))
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = load_config()
    configure_logging("DEBUG" if args.verbose else config.log_level)

    if args.command == "bot":
        return _run_bot(config)
    if args.command == "generate":
        return _run_generate(args, config)
    parser.print_usage(sys.stderr)
    print("Uso: price-cards <input.xlsx> <marco.png> <output.pdf>", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
