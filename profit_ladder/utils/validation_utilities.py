"""
Utilities for validating command parameters across the bot.
Provides standardized validators for user-entered position data.
"""

import re
from typing import Tuple, Optional, Any


class ValidationError(Exception):
    """Exception raised when required user input is missing or invalid."""
    pass


TICKER_PATTERN = re.compile(r"^[A-Z0-9.\-^=/]{1,15}$")

# Ladder rows are built on the event loop and rendered in one embed
MAX_LADDER_LEVELS = 25


def validate_ticker(value: str) -> Tuple[bool, str]:
    """
    Validate a stock ticker symbol.

    Args:
        value: Symbol to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    value = (value or "").strip().upper()
    if not value:
        return False, "Ticker symbol is required."
    if not TICKER_PATTERN.match(value):
        return False, f"Ticker {value} doesn't look like a valid symbol."
    return True, ""


def validate_interval(value: str, min_interval: int = 5, max_interval: int = 86400) -> Tuple[bool, str]:
    """
    Validate a refresh interval. Zero is accepted and means disabled.

    Args:
        value: Interval to validate
        min_interval: Minimum allowed non-zero interval in seconds
        max_interval: Maximum allowed interval in seconds

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        interval = int(value)
    except (TypeError, ValueError):
        return False, "Invalid interval format. Please enter a number."
    if interval == 0:
        return True, ""
    if interval < min_interval:
        return False, f"Interval must be 0 or at least {min_interval} seconds to avoid rate limiting."
    if interval > max_interval:
        return False, f"Interval must be at most {max_interval} seconds."
    return True, ""


def parse_float(value: Any, field_name: str) -> float:
    """Convert to float or raise ValidationError naming the field"""
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number.")


def parse_int(value: Any, field_name: str) -> int:
    """Convert to int or raise ValidationError naming the field"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number.")
    if not number.is_integer():
        raise ValidationError(f"{field_name} must be a whole number.")
    return int(number)


def parse_position_input(
    ticker: str,
    avg_price: Any,
    num_shares: Any,
    price_step: Optional[Any] = None,
    levels: Optional[Any] = None
) -> Tuple[str, float, int, Optional[float], Optional[int]]:
    """
    Validate and convert the fields of a position form.

    Args:
        ticker: Ticker symbol
        avg_price: Average price per share
        num_shares: Share count (may be negative)
        price_step: Optional ladder spacing
        levels: Optional ladder range

    Returns:
        Tuple of (ticker, avg_price, num_shares, price_step, levels)

    Raises:
        ValidationError: If a required field is missing or a value is invalid
    """
    is_valid, error = validate_ticker(ticker)
    if not is_valid:
        raise ValidationError(error)

    if avg_price is None or num_shares is None:
        raise ValidationError("Average price and number of shares are required.")

    price = parse_float(avg_price, "Average price")
    shares = parse_int(num_shares, "Number of shares")

    step = None
    if price_step not in (None, ""):
        step = parse_float(price_step, "Price step")
        if step < 0:
            raise ValidationError("Price step must not be negative.")

    level_count = None
    if levels not in (None, ""):
        level_count = parse_int(levels, "Levels")
        if level_count < 0:
            raise ValidationError("Levels must not be negative.")
        if level_count > MAX_LADDER_LEVELS:
            raise ValidationError(f"Levels must be at most {MAX_LADDER_LEVELS}.")

    return ticker.strip().upper(), price, shares, step, level_count
