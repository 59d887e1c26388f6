"""
Calendar helpers for leave day counting.

Working days are Monday to Friday; holidays are not subtracted.
"""
from datetime import date, timedelta
from typing import Iterable, Iterator, List, Optional


def daterange(start: date, end: date) -> Iterator[date]:
    """Yield each date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_business_day(d: date) -> bool:
    return d.weekday() < 5


def leave_dates(date_from: date, date_to: date, selected_dates: Optional[Iterable] = None) -> List[date]:
    """
    Dates a request covers. When specific dates were picked, only those inside
    the range count; otherwise the whole range does.
    """
    if not selected_dates:
        return list(daterange(date_from, date_to))
    picked = set()
    for value in selected_dates:
        d = value if isinstance(value, date) else date.fromisoformat(str(value))
        if date_from <= d <= date_to:
            picked.add(d)
    return sorted(picked)


def working_days(date_from: date, date_to: date, selected_dates: Optional[Iterable] = None) -> int:
    return sum(1 for d in leave_dates(date_from, date_to, selected_dates) if is_business_day(d))
