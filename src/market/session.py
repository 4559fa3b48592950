"""US equity market session clock.

Regular session is 09:30-16:00 exchange time, Monday to Friday, excluding a
fixed set of federal market holidays. Weekend-observed holiday shifting and
Good Friday are not modeled; the calendar only has to be self-consistent.
"""
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import FrozenSet
from zoneinfo import ZoneInfo

MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    """Return the nth weekday (0=Mon, 6=Sun) in the given month."""
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset, weeks=n - 1)


def _last_weekday(year: int, month: int, weekday: int) -> date:
    if month == 12:
        next_first = date(year + 1, 1, 1)
    else:
        next_first = date(year, month + 1, 1)
    last_day = next_first - timedelta(days=1)
    return last_day - timedelta(days=(last_day.weekday() - weekday) % 7)


@lru_cache(maxsize=16)
def market_holidays(year: int) -> FrozenSet[date]:
    """Return the market holidays for `year`."""
    return frozenset(
        {
            date(year, 1, 1),  # New Year's Day
            _nth_weekday(year, 1, 0, 3),  # MLK Day
            _nth_weekday(year, 2, 0, 3),  # Presidents Day
            _last_weekday(year, 5, 0),  # Memorial Day
            date(year, 6, 19),  # Juneteenth
            date(year, 7, 4),  # Independence Day
            _nth_weekday(year, 9, 0, 1),  # Labor Day
            _nth_weekday(year, 11, 3, 4),  # Thanksgiving
            date(year, 12, 25),  # Christmas
        }
    )


class MarketSessionClock:
    """Answers whether the exchange is in its regular session at a given instant."""

    def __init__(self, tz: str = "America/New_York"):
        self.tz = ZoneInfo(tz)

    def local_time(self, now: datetime | None = None) -> datetime:
        """Convert `now` (naive values are taken as UTC) to exchange local time."""
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self.tz)

    def is_open(self, now: datetime | None = None) -> bool:
        local = self.local_time(now)
        if local.weekday() >= 5:
            return False
        if not (MARKET_OPEN <= local.time() < MARKET_CLOSE):
            return False
        return local.date() not in market_holidays(local.year)
