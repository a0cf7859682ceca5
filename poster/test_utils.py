"""
Tests for text, price and row-number helpers.
"""
import logging

from poster.utils import (
    init_logger,
    mask_email,
    parse_price,
    split_photos,
    timestamp_slug,
    to_row_number,
)


def test_price_parsing():
    """Currency symbols and thousands separators are stripped."""
    assert parse_price("$1,200.50") == "1200.50"
    assert parse_price("150") == "150"
    assert parse_price(75) == "75"
    assert parse_price("  ฿ 3,000 ") == "3000"

    # Edge cases
    assert parse_price("") is None
    assert parse_price(None) is None
    assert parse_price("free") is None


def test_negative_prices_are_rejected():
    """A leading minus sign, before or after the currency symbol, is not a price."""
    assert parse_price("-50") is None
    assert parse_price("-$1,200") is None
    assert parse_price("$-75.5") is None
    assert parse_price(-20) is None
    assert parse_price("0") == "0"


def test_split_photos():
    assert split_photos("a.jpg, b.jpg,,c.png ") == ["a.jpg", "b.jpg", "c.png"]
    assert split_photos("") == []
    assert split_photos(None) == []
    assert split_photos(["x.jpg", " ", "y.jpg"]) == ["x.jpg", "y.jpg"]


def test_row_number_coercion():
    """Only positive integers are valid sheet row numbers."""
    assert to_row_number(5) == 5
    assert to_row_number("12") == 12
    assert to_row_number(" 3 ") == 3
    assert to_row_number(0) is None
    assert to_row_number(-2) is None
    assert to_row_number("abc") is None
    assert to_row_number(None) is None
    assert to_row_number(True) is None


def test_mask_email():
    assert mask_email("seller@example.com") == "sel***"
    assert mask_email("") == ""
    assert "example" not in mask_email("seller@example.com")


def test_timestamp_slug_is_filesystem_safe():
    slug = timestamp_slug()
    assert ":" not in slug
    assert "." not in slug
    assert "+" not in slug


def test_init_logger_without_file():
    """A logger without file output only gets the console handler."""
    logger = init_logger(name="poster-test-console", log_file=None)
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    # Second call reuses existing handlers
    assert init_logger(name="poster-test-console", log_file=None) is logger
    assert len(logger.handlers) == 1


def test_init_logger_with_file(tmp_path):
    log_file = tmp_path / "poster.log"
    logger = init_logger(name="poster-test-file", console_level="WARNING", log_file=str(log_file))
    logger.info("written to file only")
    for h in logger.handlers:
        h.flush()
    assert "written to file only" in log_file.read_text(encoding="utf-8")
    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)
