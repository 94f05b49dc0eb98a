import atexit
import logging
import os
from typing import Optional, TextIO

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_ENV = "PUMA_LOG_FILE"

_handler: Optional[RichHandler] = None
_log_file: Optional[TextIO] = None


class CenteredFormatter(logging.Formatter):
    """Pads logger names to the widest one seen so messages line up."""

    width = 18

    def format(self, record):
        CenteredFormatter.width = max(CenteredFormatter.width, len(record.name))
        record.name = record.name.center(CenteredFormatter.width)
        return super().format(record)


def _log_console() -> Optional[Console]:
    # the TUI owns the terminal; send records to a file when one is configured
    global _log_file
    path = os.getenv(LOG_FILE_ENV)
    if not path:
        return None
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    close_log_file()
    _log_file = open(path, "a", encoding="utf-8")
    atexit.register(close_log_file)
    return Console(file=_log_file, width=120, no_color=True)


def close_log_file() -> None:
    """Close the ``$PUMA_LOG_FILE`` stream, if one is open."""
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None


def _shared_handler(level: int) -> RichHandler:
    global _handler
    if _handler is None:
        _handler = RichHandler(
            console=_log_console(),
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        _handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
    _handler.setLevel(min(_handler.level or level, level))
    return _handler


def get_logger(name=None) -> logging.Logger:
    """
    Portal logger writing through one shared RichHandler.

    DEBUG level when the DEBUG environment variable is set, INFO otherwise.
    Records go to ``$PUMA_LOG_FILE`` when set, to the console otherwise.
    """
    logger = logging.getLogger(name or "portal")
    level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        logger.addHandler(_shared_handler(level))
        logger.propagate = False
        logger.debug(f"Logger for '{logger.name}' ready.")

    return logger
