from datetime import datetime
import pytz
from typing import Optional

UTC = pytz.utc


def now_utc() -> datetime:
    """
    Get current time in UTC (naive datetime for MongoDB compatibility)

    Returns:
        datetime: Current datetime in UTC (naive)
    """
    now = datetime.utcnow()
    # MongoDB stores millisecond precision
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC, the form stored in MongoDB

    Args:
        dt: naive (assumed UTC) or timezone-aware datetime
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def parse_date_param(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime request parameter

    "2024-01-31" is midnight UTC of that day, "2024-01-31T10:00:00Z" and
    offsets are converted to UTC.

    Returns:
        datetime: naive UTC datetime, or None when the value is unparseable
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    return to_naive_utc(parsed)

