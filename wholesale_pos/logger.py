"""
Process-wide JSON logging.

All loggers hang under ``wholesale_pos``; the handlers are attached once, on
first use, to that root:

* ``<LOG_DIR>/wholesale_pos.log``  INFO and above, everything
* ``<LOG_DIR>/errors.log``         ERROR and above
* ``<LOG_DIR>/ledger.log``         stock and sales events only, appended across runs
* console                          LOG_LEVEL and above
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER_NAME = "wholesale_pos"

# Loggers whose records also go to the ledger audit file
LEDGER_LOGGERS = ("wholesale_pos.domain.stock", "wholesale_pos.domain.sales", "wholesale_pos.domain.purchasing")

_configure_lock = threading.Lock()
_configured = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line"""

    FIELDS = (
        ("logger", "name"),
        ("level", "levelname"),
        ("module", "module"),
        ("function", "funcName"),
        ("line", "lineno"),
        ("thread", "threadName"),
    )

    def format(self, record) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
        }
        for key, attribute in self.FIELDS:
            entry[key] = getattr(record, attribute, None)
        entry["message"] = record.getMessage()

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class LedgerFilter(logging.Filter):
    """Pass only records emitted by the stock, sales and purchasing loggers"""

    def filter(self, record) -> bool:
        return record.name.startswith(LEDGER_LOGGERS)


def _level_from_env() -> int:
    return getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)


def configure_logging() -> logging.Logger:
    """Attach the handlers to the root logger; later calls return it unchanged"""
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return root

    with _configure_lock:
        if _configured:
            return root

        level = _level_from_env()
        root.setLevel(min(level, logging.INFO))
        root.handlers.clear()
        formatter = JsonFormatter()

        logs_dir = Path(os.environ.get("LOG_DIR", "logs"))
        logs_dir.mkdir(parents=True, exist_ok=True)

        main_handler = logging.FileHandler(logs_dir / "wholesale_pos.log", mode="w", encoding="utf-8")
        main_handler.setLevel(logging.INFO)

        error_handler = logging.FileHandler(logs_dir / "errors.log", mode="w", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)

        ledger_handler = RotatingFileHandler(logs_dir / "ledger.log", maxBytes=5 * 1024 * 1024,
                                             backupCount=5, encoding="utf-8")
        ledger_handler.setLevel(logging.INFO)
        ledger_handler.addFilter(LedgerFilter())

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)

        for handler in (main_handler, error_handler, ledger_handler, console_handler):
            handler.setFormatter(formatter)
            root.addHandler(handler)

        _configured = True
    return root


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Logger named ``name`` writing through the shared JSON handlers.

    Names outside the ``wholesale_pos`` tree get the root logger.
    """
    root = configure_logging()
    if name == ROOT_LOGGER_NAME or not name.startswith(ROOT_LOGGER_NAME + "."):
        return root
    return logging.getLogger(name)
