"""
Logging for DAE.

Every subsystem logs below the "dae" logger (dae.engine, dae.settlement,
dae.host.balances, dae.house, dae.cli). Console lines are colored by level
with colorlog; a plain rotating log file is optional.

Auction engines log through an AuctionLogAdapter, so every line of one
auction carries its short handle:

    2024-01-01 12:00:00 [dae.engine] INFO     [0x3f2a9c10] Auction settled: ...
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO

import colorlog

ROOT_LOGGER = "dae"
LOG_FILE = "dae.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
CONSOLE_FORMAT = "%(log_color)s%(asctime)s [%(name)s] %(levelname)-8s%(reset)s %(message)s"

# Settlement failures are WARNING, rollback failures CRITICAL
LEVEL_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


def _console_handler(level: int, stream: TextIO) -> logging.Handler:
    handler = colorlog.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(
        colorlog.ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT, log_colors=LEVEL_COLORS)
    )
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


class DAELogger:
    """
    Owns the handlers attached to the "dae" logger.

    configure() may be called again (the CLI does, once config is loaded);
    it replaces the previous handlers instead of stacking new ones.
    """

    _configured = False
    log_file: Optional[Path] = None

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        log_dir: Optional[str] = None,
        log_to_file: bool = False,
        stream: Optional[TextIO] = None,
    ) -> None:
        """
        Attach a console handler and, optionally, a rotating file handler.

        Args:
            level: Threshold for the "dae" logger and its handlers
            log_dir: Directory for dae.log (default ./logs)
            log_to_file: Write dae.log as well as the console
            stream: Console stream (default sys.stdout at call time)
        """
        cls.reset()

        root = logging.getLogger(ROOT_LOGGER)
        root.setLevel(level)
        root.addHandler(_console_handler(level, stream or sys.stdout))

        if log_to_file:
            directory = Path(log_dir) if log_dir else Path("logs")
            directory.mkdir(parents=True, exist_ok=True)
            cls.log_file = directory / LOG_FILE
            root.addHandler(_file_handler(cls.log_file, level))

        cls._configured = True

    @classmethod
    def reset(cls) -> None:
        """Close and drop every handler on the "dae" logger."""
        root = logging.getLogger(ROOT_LOGGER)
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        cls._configured = False
        cls.log_file = None

    @classmethod
    def ensure_configured(cls) -> None:
        # Library use without the CLI: console only, never a stray log file
        if not cls._configured:
            cls.configure()


class AuctionLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the auction's short handle."""

    def process(self, msg, kwargs):
        return f"[{self.extra['auction']}] {msg}", kwargs


def get_logger(name: str) -> logging.Logger:
    """Logger for one subsystem, e.g. get_logger("house") -> dae.house"""
    DAELogger.ensure_configured()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def auction_logger(name: str, auction_id: bytes) -> AuctionLogAdapter:
    """Subsystem logger bound to one auction."""
    return AuctionLogAdapter(get_logger(name), {"auction": "0x" + auction_id[:4].hex()})


def setup_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    log_to_file: bool = False,
) -> None:
    """(Re)configure DAE logging."""
    DAELogger.configure(level=level, log_dir=log_dir, log_to_file=log_to_file)
