"""Date parsing utilities."""

from datetime import date, datetime, timedelta
from dateutil import parser as date_parser


def parse_date(value: str | date) -> date:
    """Parse a date string into a date object.

    Accepts date/datetime objects unchanged, ISO and bank-style absolute
    dates ("2024-01-15", "01/15/2024", "Jan 15, 2024"), and the relative
    words "today" and "yesterday".

    Args:
        value: Date string or date

    Returns:
        Date object

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Could not parse date '{value}'")

    date_str = value.strip().lower()
    today = date.today()
    if date_str == "today":
        return today
    if date_str == "yesterday":
        return today - timedelta(days=1)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{value}': {e}") from None
