"""Date manipulation utilities"""

from datetime import date, datetime
from typing import Optional, Union

from loan_tracker.domain.exceptions import ValidationError

ISO_DATE_FORMAT = "%Y-%m-%d"


def _parse_iso(text: str) -> date:
    # strptime alone accepts unpadded parts like 2024-1-5
    if len(text) != 10:
        raise ValueError(f"not a YYYY-MM-DD date: {text!r}")
    return datetime.strptime(text, ISO_DATE_FORMAT).date()


def parse_calendar_date(value: Union[str, date, None], field_name: str = "date") -> date:
    """Parse a YYYY-MM-DD string (or pass through a date), raising ValidationError"""
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} is required")
    try:
        return _parse_iso(value.strip())
    except ValueError as e:
        raise ValidationError(f"{field_name} must be a valid YYYY-MM-DD date") from e


def to_iso(value: Optional[date]) -> Optional[str]:
    """Format a date in the persisted YYYY-MM-DD form"""
    return value.isoformat() if value else None


def from_iso(value: Optional[str]) -> Optional[date]:
    """Read a persisted YYYY-MM-DD string; malformed or missing values become None"""
    if not value:
        return None
    try:
        return _parse_iso(value)
    except ValueError:
        return None


def is_within(day: Optional[date], start: date, end: date) -> bool:
    """Inclusive range check; a missing day is never within"""
    return day is not None and start <= day <= end
