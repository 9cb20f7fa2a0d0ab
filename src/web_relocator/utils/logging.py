"""
Logging setup for Web Relocator.

Only the ``web_relocator`` logger tree is configured, so an application
embedding the resolver keeps its own root handlers. Resolver records carry
``attempt``, ``frame``, ``score`` and ``strategy`` extras, which the JSON
file format writes out as fields.
"""

import json
import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from web_relocator.config.settings import LoggingSettings


PACKAGE_LOGGER = "web_relocator"


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    EXTRA_FIELDS = ("attempt", "frame", "score", "strategy")

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for name in self.EXTRA_FIELDS:
            if hasattr(record, name):
                payload[name] = getattr(record, name)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    settings: Optional[LoggingSettings] = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the package logger from the ``logging`` settings section.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        settings: Logging settings (defaults when omitted)
        verbose: Force DEBUG and show timestamps and source paths

    Returns:
        The configured ``web_relocator`` logger
    """
    settings = settings or LoggingSettings()
    level = logging.DEBUG if verbose else getattr(logging, settings.level, logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if settings.file:
        file_handler = logging.FileHandler(settings.file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            JsonFormatter() if settings.json_format else logging.Formatter(settings.format)
        )
        logger.addHandler(file_handler)

    return logger
