# app/core/logging.py
import logging

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Root logger setup, called once from create_app."""
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
    )
