"""Logging setup for page-oracle."""

import logging
import os
import sys

# Below DEBUG; also unmutes web3/urllib3/requests
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_NOISY_LOGGERS = ("web3", "urllib3", "requests")


class ColoredFormatter(logging.Formatter):
    """Paints the level name with an ANSI color when the stream is a terminal."""

    LEVEL_COLORS = {
        TRACE: "\033[90m",
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }

    def __init__(self, fmt=None, datefmt=None, *, use_color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not self.use_color or color is None:
            return super().format(record)
        painted = logging.makeLogRecord(record.__dict__)
        painted.levelname = f"{color}\033[1m{record.levelname}\033[0m"
        return super().format(painted)


def setup_logging(log_level: str | None = None) -> None:
    """Install one console handler on stderr for the whole process.

    ``log_level`` wins over the LOG_LEVEL environment variable; unknown
    names fall back to INFO. At DEBUG the HTTP and web3 libraries stay at
    WARNING so pool reads remain readable.
    """
    name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ColoredFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            use_color=sys.stderr.isatty(),
        )
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    if level == logging.DEBUG:
        for noisy in _NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)
    elif level == TRACE:
        for noisy in _NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(TRACE)
