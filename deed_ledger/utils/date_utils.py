"""Date manipulation utilities"""

from datetime import date, datetime
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

QUARTERS = {"Q1": (1, 3), "Q2": (4, 6), "Q3": (7, 9), "Q4": (10, 12)}


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of shorter months (Jan 31 + 1 -> Feb 28/29)"""
    return start + relativedelta(months=months)


def month_start(value: date) -> date:
    return value.replace(day=1)


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")


def year_bounds(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def within(value: date, start: Optional[date], end: Optional[date]) -> bool:
    """Inclusive range check; a missing bound is open"""
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def parse_date(value) -> Optional[date]:
    """Parse ISO (YYYY-MM-DD) strings, datetimes or dates; blank input yields None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        # Drop a time part, but only after a T or space separator
        return date.fromisoformat(text.split("T", 1)[0].split(" ", 1)[0])
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")


def resolve_period(
    period: str,
    year: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[date, date, str]:
    """
    Resolve a reporting period selector to (start, end, label).

    Supported selectors:
    - YEAR: Jan 1 .. Dec 31 of `year`
    - Q1..Q4: calendar quarter of `year`
    - RANGE: explicit start_date .. end_date (both required)
    """
    period = period.upper()
    if period == "RANGE":
        if start_date is None or end_date is None:
            raise ValueError("RANGE period requires start_date and end_date")
        if start_date > end_date:
            raise ValueError("start_date must be on or before end_date")
        return start_date, end_date, f"{start_date.isoformat()}_{end_date.isoformat()}"

    if year is None:
        raise ValueError(f"{period} period requires a year")

    if period == "YEAR":
        start, end = year_bounds(year)
        return start, end, str(year)

    if period in QUARTERS:
        first_month, last_month = QUARTERS[period]
        start = date(year, first_month, 1)
        end = add_months(date(year, last_month, 1), 1) - relativedelta(days=1)
        return start, end, f"{year}_{period}"

    raise ValueError(f"Unknown period: {period}")
