"""Bucket keys for time-granularity grouping."""
from datetime import date, datetime, timedelta
from typing import Optional, Union

from moneylog.utils.exceptions import ValidationError

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"

FREQUENCIES = (DAILY, WEEKLY, MONTHLY, QUARTERLY, YEARLY)
DEFAULT_FREQUENCY = MONTHLY

MONDAY = 0
SUNDAY = 6


def normalize_frequency(frequency: Optional[str]) -> str:
    """Return a known frequency, falling back to monthly."""
    if isinstance(frequency, str) and frequency.strip().lower() in FREQUENCIES:
        return frequency.strip().lower()
    return DEFAULT_FREQUENCY


def validate_frequency(frequency: Optional[str]) -> str:
    """Return a known frequency or raise ValidationError."""
    if not isinstance(frequency, str) or frequency.strip().lower() not in FREQUENCIES:
        raise ValidationError(
            f"Invalid frequency {frequency!r}; expected one of: {', '.join(FREQUENCIES)}"
        )
    return frequency.strip().lower()


def week_start_date(value: date, week_start: int = SUNDAY) -> date:
    """First day of the week containing ``value``."""
    offset = (value.weekday() - week_start) % 7
    return value - timedelta(days=offset)


def frequency_key(value: Union[date, datetime], frequency: Optional[str], week_start: int = SUNDAY) -> str:
    """
    Map a date to the key of the bucket containing it.

    Two dates share a key iff they fall in the same bucket:

    - daily: ``YYYY-MM-DD``
    - weekly: start of the week as ``YYYY-MM-DD``
    - monthly: ``YYYY-MM``
    - quarterly: ``YYYY-QN``
    - yearly: ``YYYY``

    Unknown frequencies use the monthly key.
    """
    if isinstance(value, datetime):
        value = value.date()

    frequency = normalize_frequency(frequency)

    if frequency == DAILY:
        return value.isoformat()
    if frequency == WEEKLY:
        return week_start_date(value, week_start).isoformat()
    if frequency == QUARTERLY:
        return f"{value.year:04d}-Q{(value.month - 1) // 3 + 1}"
    if frequency == YEARLY:
        return f"{value.year:04d}"
    return f"{value.year:04d}-{value.month:02d}"


def previous_period(frequency: str, today: date, week_start: int = SUNDAY) -> tuple[date, date]:
    """Return the last fully completed period before ``today``."""
    frequency = normalize_frequency(frequency)

    if frequency == DAILY:
        day = today - timedelta(days=1)
        return day, day

    if frequency == WEEKLY:
        end = week_start_date(today, week_start) - timedelta(days=1)
        return end - timedelta(days=6), end

    if frequency == QUARTERLY:
        quarter_start = date(today.year, (today.month - 1) // 3 * 3 + 1, 1)
        end = quarter_start - timedelta(days=1)
        start = date(end.year, (end.month - 1) // 3 * 3 + 1, 1)
        return start, end

    if frequency == YEARLY:
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)

    end = today.replace(day=1) - timedelta(days=1)
    return end.replace(day=1), end
