"""
Utility functions for price parsing, row helpers, and logging.
"""
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union


def init_logger(
    name: str = "poster",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "poster.log"
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

    if log_file:  # Create file handler only if log_file is provided
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def timestamp_slug() -> str:
    """Filesystem-safe UTC timestamp, used in screenshot names."""
    return re.sub(r"[:.+]", "-", now_iso())


def parse_price(price_text: Union[str, int, float, None]) -> Optional[str]:
    """
    Normalize a sheet price cell to a plain decimal string.

    Accepts currency symbols and thousands separators ("$1,200.50" -> "1200.50").
    Returns None when no non-negative number can be read.
    """
    if price_text is None:
        return None
    s = str(price_text).replace(",", "").replace("\xa0", " ").strip()
    m = re.search(r"\d+(?:\.\d+)?", s)
    if not m:
        return None
    # A minus sign anywhere before the digits ("-50", "-$50", "$-50") is a negative price
    if "-" in s[:m.start()]:
        return None
    try:
        value = Decimal(m.group(0))
    except InvalidOperation:
        return None
    return format(value, "f")


def split_photos(photos: Union[str, List[str], None]) -> List[str]:
    """Split the comma-separated Photos cell into references."""
    if not photos:
        return []
    if isinstance(photos, (list, tuple)):
        items = photos
    else:
        items = str(photos).split(",")
    return [p.strip() for p in items if p and p.strip()]


def to_row_number(value) -> Optional[int]:
    """Coerce a row identifier to a positive int, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def mask_email(email: Optional[str]) -> str:
    """Keep only the first three characters for logs."""
    if not email:
        return ""
    return f"{email[:3]}***"
