from __future__ import annotations

import logging
import sys

from sales_dashboard.config import settings


def configure_logging(level: str | None = None) -> None:
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(settings.log_format))
    root_logger.addHandler(console_handler)

    # SQL echo is controlled by database_echo, keep the engine logger quiet otherwise.
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
