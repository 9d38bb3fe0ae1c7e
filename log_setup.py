"""Logging setup shared by the web app and the CLI.

configure() runs once at startup; every other module just calls
logging.getLogger(__name__).

Handlers:
  console      - requested level, one line per record
  logs/app.log - DEBUG, detailed, rotating (5 files of 5 MB)
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOGS_DIR = Path(__file__).parent / "logs"
LOG_FILE  = LOGS_DIR / "app.log"

_CONSOLE_FMT = "%(asctime)s  %(levelname)-7s  %(name)s - %(message)s"
_FILE_FMT    = "%(asctime)s  %(levelname)-7s  %(name)-20s  %(filename)s:%(lineno)d - %(message)s"
_DATE_FMT    = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = (
    "urllib3", "httpx", "httpcore", "werkzeug",
    "openai", "anthropic", "google_genai", "replicate",
)


def configure(level: str = "INFO", log_file: Path = LOG_FILE) -> None:
    """Attach console + rotating file handlers to the root logger once."""
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(logging.DEBUG)

    ch = logging.StreamHandler()
    ch.setLevel(getattr(logging, level.upper(), logging.INFO))
    ch.setFormatter(logging.Formatter(_CONSOLE_FMT, datefmt=_DATE_FMT))
    root.addHandler(ch)

    log_file.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_DATE_FMT))
    root.addHandler(fh)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
