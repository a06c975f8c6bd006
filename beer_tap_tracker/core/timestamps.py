"""
Timestamp parsing helpers.

All timestamps handled by the tracker are timezone-aware UTC datetimes.
"""

import re
from datetime import datetime, timezone
from typing import Union

from .errors import InvalidDateFormat

_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})[.,](\d+)")


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC. A trailing ``Z`` is accepted, and
    fractional seconds may have any number of digits.

    Args:
        value: ISO-8601 string or datetime

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        InvalidDateFormat: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        # fromisoformat before 3.11 only takes 3 or 6 fraction digits
        text = _FRACTION.sub(_pad_fraction, text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidDateFormat()
    else:
        raise InvalidDateFormat()

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a UTC datetime as ISO-8601 with a ``Z`` suffix and millisecond precision."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _pad_fraction(match: "re.Match") -> str:
    """Pad or truncate fractional seconds to microseconds."""
    digits = (match.group(2) + "000000")[:6]
    return f"{match.group(1)}.{digits}"
