from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, FrozenSet, Iterable, List

from .time_rules import WEEKDAY_TAGS, YMD_RE, add_days, format_date, weekday_tag


@dataclass(frozen=True)
class HolidaySet:
    """Non-business days: weekday tags plus explicit YYYY-MM-DD dates."""

    weekdays: FrozenSet[str] = field(default_factory=frozenset)
    dates: FrozenSet[str] = field(default_factory=frozenset)

    def __bool__(self) -> bool:
        return bool(self.weekdays or self.dates)


def _tokens(raw: Iterable[Any] | None) -> Iterable[str]:
    if not isinstance(raw, (list, tuple, set, frozenset)):
        return []
    return [x.strip() for x in raw if isinstance(x, str) and x.strip()]


def build_holiday_set(raw: Iterable[Any] | None) -> HolidaySet:
    weekdays, dates = set(), set()
    for tok in _tokens(raw):
        if tok in WEEKDAY_TAGS:
            weekdays.add(tok)
        elif YMD_RE.match(tok):
            dates.add(tok)
    return HolidaySet(weekdays=frozenset(weekdays), dates=frozenset(dates))


def build_blackout_set(raw: Iterable[Any] | None) -> FrozenSet[str]:
    return frozenset(tok for tok in _tokens(raw) if YMD_RE.match(tok))


def is_holiday(d: date, holidays: HolidaySet) -> bool:
    return weekday_tag(d) in holidays.weekdays or format_date(d) in holidays.dates


def is_blackout(d: date, blackout: FrozenSet[str]) -> bool:
    return format_date(d) in blackout


def covers_every_weekday(holidays: HolidaySet) -> bool:
    return set(WEEKDAY_TAGS) <= set(holidays.weekdays)


def disabled_dates(start: date, end: date, holidays: HolidaySet, blackout: FrozenSet[str]) -> List[str]:
    """Holidays and blackout dates inside [start, end], sorted."""
    out = set()
    d = start
    while d <= end:
        if is_holiday(d, holidays) or is_blackout(d, blackout):
            out.add(format_date(d))
        d = add_days(d, 1)
    return sorted(out)
