import calendar
from datetime import datetime, timedelta
from enum import Enum


class Timeframe(str, Enum):
    """Window selector for member rankings."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


def subtract_months(moment: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the month length.

    31 March minus one month is 28/29 February, not 3 March.
    """
    total = moment.year * 12 + (moment.month - 1) - months
    year, month_index = divmod(total, 12)
    month = month_index + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_window(timeframe: Timeframe, now: datetime) -> tuple[datetime, datetime]:
    """Concrete ``[start, end]`` for a timeframe, ending at ``now``.

    ``all`` is a trailing one-year window rather than full history; scanning
    the upstream billing log without a bound has no cost ceiling.
    """
    timeframe = Timeframe(timeframe)
    if timeframe is Timeframe.DAY:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif timeframe is Timeframe.WEEK:
        start = now - timedelta(days=7)
    elif timeframe is Timeframe.MONTH:
        start = subtract_months(now, 1)
    else:
        start = subtract_months(now, 12)
    return start, now
