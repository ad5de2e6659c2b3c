"""
Logging setup and small text / URL helpers shared by the extraction modules.
"""
import logging
import re
from datetime import datetime, timezone
from urllib.parse import urlsplit


def init_logger(
    name: str = "pg_scraper",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: str | None = None,
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clean_text(s: str | None) -> str:
    """Collapse runs of whitespace and trim. None -> ''."""
    if not s:
        return ""
    return re.sub(r"\s+", " ", s).strip()


def site_root(url: str) -> str:
    """'https://host/a/b.html?x=1' -> 'https://host'. Falls back to the input when it has no host."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url.rstrip("/")
    return f"{parts.scheme}://{parts.netloc}"
