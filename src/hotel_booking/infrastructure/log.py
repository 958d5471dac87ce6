"""
Логгер на основе стандартного модуля logging.

Реализует порт ILogger: контекст передается именованными аргументами
и выводится после сообщения.
"""

import json
import logging
from typing import Any

ROOT_LOGGER = "hotel_booking"


class ContextFormatter(logging.Formatter):
    """Дописывает к сообщению контекст из extra["context"]."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if context:
            message = f"{message} | {json.dumps(context, default=str, ensure_ascii=False)}"
        return message


def configure_logging(level: str = "INFO") -> None:
    """Настраивает вывод логов пакета в stderr."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())
    if not any(isinstance(h.formatter, ContextFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            ContextFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        logger.addHandler(handler)


class StdLogger:
    """Адаптер ILogger поверх logging.Logger."""

    def __init__(self, name: str = ROOT_LOGGER):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, context: dict) -> None:
        self._logger.log(level, message, extra={"context": context})

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)
