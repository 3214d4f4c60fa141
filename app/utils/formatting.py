"""Display formatting for booking dates, times and media paths."""

import logging
from datetime import date, datetime

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%d-%m-%Y")
_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I %p")


def _parse_date(value: str) -> date | None:
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_booking_date(value: str | None) -> str:
    """Format a stored booking date for humans.

    Args:
        value: Date as provided by the client, usually ISO ``YYYY-MM-DD``

    Returns:
        str: Like ``Saturday, March 1, 2025``, or the raw value if it
        cannot be parsed
    """
    if not value:
        return ""
    parsed = _parse_date(value)
    if parsed is None:
        logger.warning(f"Could not parse booking date {value!r}; using raw value")
        return value
    return f"{parsed:%A, %B} {parsed.day}, {parsed.year}"


def format_booking_time(value: str | None) -> str:
    """Format a stored booking time on a 12-hour clock.

    Args:
        value: Time as provided by the client, usually ``HH:MM``

    Returns:
        str: Like ``02:30 PM``, or the raw value if it cannot be parsed
    """
    if not value:
        return ""
    text = value.strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%I:%M %p")
        except ValueError:
            continue
    logger.warning(f"Could not parse booking time {value!r}; using raw value")
    return value


def format_price(value) -> str:
    """Render a price without trailing zero cents."""
    if value is None:
        return ""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:.2f}"


def resolve_image_url(path: str | None, base_url: str) -> str | None:
    """Prefix relative profile image paths with the media base URL."""
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
