import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, str(level or "INFO").upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    # fpdf and PIL are noisy at DEBUG
    logging.getLogger("fpdf").setLevel(max(numeric, logging.WARNING))
    logging.getLogger("PIL").setLevel(max(numeric, logging.WARNING))
