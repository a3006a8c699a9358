"""Calendar helpers for the month-end draw schedule."""

from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Optional, Union


def parse_draw_date(value: Union[date, datetime, str]) -> date:
    """Coerce ``value`` to a :class:`date`.

    Accepts a ``date``, a ``datetime`` (its date part is used) or an ISO
    ``YYYY-MM-DD`` string.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(f"invalid draw date {value!r}; expected YYYY-MM-DD") from exc
    raise ValueError(f"invalid draw date {value!r}")


def last_day_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def current_draw_date(today: Optional[date] = None) -> date:
    """Draws happen on the last day of each month."""
    return last_day_of_month(today or date.today())


def next_draw_date(draw_date: date) -> date:
    """Last calendar day of the month after ``draw_date``."""
    if draw_date.month == 12:
        first_of_next = date(draw_date.year + 1, 1, 1)
    else:
        first_of_next = date(draw_date.year, draw_date.month + 1, 1)
    return last_day_of_month(first_of_next)


__all__ = [
    "current_draw_date",
    "last_day_of_month",
    "next_draw_date",
    "parse_draw_date",
]
