"""Date parsing helpers shared by the boundary and the aggregation engine."""
from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[date, datetime, str, None]

DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y"]


def parse_date(value: DateLike) -> Optional[date]:
    """Convert a date, datetime or ISO-8601 string to a date.

    Returns None when the value is empty or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date(value: Optional[date]) -> Optional[str]:
    """Format a date as ISO string, passing None through."""
    return value.isoformat() if value else None
