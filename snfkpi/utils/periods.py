import calendar
from typing import Tuple


def parse_period(period_id: str) -> Tuple[int, int]:
    """Split a canonical yyyy-mm period id into (year, month)."""
    try:
        year_text, month_text = str(period_id).split("-")
        year, month = int(year_text), int(month_text)
    except ValueError:
        raise ValueError(f"Period id must be yyyy-mm, got '{period_id}'")

    if not 1 <= month <= 12:
        raise ValueError(f"Period id must be yyyy-mm, got '{period_id}'")

    return year, month


def days_in_period(period_id: str) -> int:
    year, month = parse_period(period_id)
    return calendar.monthrange(year, month)[1]
