"""Logging for the scraper package.

Everything logs under the ``scraper`` logger hierarchy. ``setup_logging``
attaches a console handler (coloured on a terminal) and a JSONL file
handler writing ``logs/scrape_YYYYMMDD.jsonl``. Structured events such as
``search_start`` or ``scrape_error`` go through ``log_scrape_event`` and
land in the file as top-level keys next to the usual level/logger/message.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = [
    "setup_logging",
    "get_logger",
    "log_scrape_event",
    "LOG_DIR",
    "ROOT_LOGGER",
]

ROOT_LOGGER = "scraper"
LOG_DIR = Path(__file__).parent.parent / "logs"

_LEVEL_COLOURS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


class ScrapeEventFileHandler(logging.Handler):
    """Appends each record as one JSON line to a per-day file."""

    def __init__(self, log_dir: Path, prefix: str = "scrape"):
        super().__init__(level=logging.DEBUG)
        log_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir = log_dir
        self.prefix = prefix

    def path_for(self, day: datetime) -> Path:
        return self.log_dir / f"{self.prefix}_{day:%Y%m%d}.jsonl"

    def emit(self, record: logging.LogRecord) -> None:
        now = datetime.now()
        entry: Dict[str, Any] = {
            "timestamp": now.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event_type = getattr(record, "event_type", None)
        if event_type:
            entry["event_type"] = event_type
            entry.update(getattr(record, "event_data", {}))

        try:
            with open(self.path_for(now), "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        except OSError:
            self.handleError(record)


class ConsoleFormatter(logging.Formatter):
    """Short console lines, coloured by level when ``colour`` is set."""

    def __init__(self, colour: bool):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self.colour:
            return line
        return f"{_LEVEL_COLOURS.get(record.levelno, '')}{line}{_RESET}"


def setup_logging(
    level: int = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """Replace the handlers on the ``scraper`` logger.

    Args:
        level: Threshold for the logger and the console
        log_to_file: Add the JSONL file handler (always at DEBUG)
        log_to_console: Add a stderr handler
        log_dir: Directory for JSONL files (default: project logs/)

    Returns:
        The ``scraper`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    if log_to_console:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(ConsoleFormatter(colour=sys.stderr.isatty()))
        logger.addHandler(console)

    if log_to_file:
        logger.addHandler(ScrapeEventFileHandler(log_dir or LOG_DIR))

    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger for one scraper component: ``get_logger("search")`` -> ``scraper.search``."""
    if name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_scrape_event(
    event_type: str,
    data: Dict[str, Any],
    level: int = logging.INFO,
    component: str = ROOT_LOGGER,
) -> None:
    """Log a structured event; ``data`` becomes top-level keys in the JSONL file."""
    get_logger(component).log(
        level,
        f"{event_type} {data.get('url') or data.get('site_url') or ''}".strip(),
        extra={"event_type": event_type, "event_data": dict(data)},
    )
