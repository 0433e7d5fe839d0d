"""Selectable delivery window.

Holidays only slow down business-day counting; they never make a date
unselectable. Blackout dates are the reverse: they never count against lead
time, but a blackout date can never be picked and `min_date` is pushed past
them.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, FrozenSet, List

from .calendar_sets import HolidaySet, build_blackout_set, build_holiday_set, disabled_dates, is_blackout, is_holiday
from .config import HOLIDAY_SEARCH_LIMIT, MAX_WINDOW_DAYS
from .time_rules import add_days, format_date, is_past_cutoff, start_of_day


class HolidayConfigurationError(RuntimeError):
    """Business-day search never found an open day (e.g. every weekday is a holiday)."""

    def __init__(self, start: date, limit: int):
        self.start = start
        self.limit = limit
        super().__init__(f"No business day within {limit} days of {format_date(start)}; check holiday settings")


@dataclass(frozen=True)
class AvailabilityWindow:
    min_date: date
    max_date: date
    blackout: FrozenSet[str] = frozenset()

    def contains(self, d: date) -> bool:
        return self.min_date <= d <= self.max_date

    def is_selectable(self, d: date) -> bool:
        return self.contains(d) and not is_blackout(d, self.blackout)

    def disabled_dates(self, holidays: HolidaySet) -> List[str]:
        return disabled_dates(self.min_date, self.max_date, holidays, self.blackout)

    def as_dict(self) -> Dict[str, str]:
        return {"minDate": format_date(self.min_date), "maxDate": format_date(self.max_date)}


def _clamp_int(value: Any, lower: int, upper: int = MAX_WINDOW_DAYS) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError, OverflowError):
        return lower
    return min(upper, max(lower, n))


def _skip_holidays(d: date, holidays: HolidaySet, limit: int) -> date:
    start = d
    steps = 0
    while is_holiday(d, holidays):
        steps += 1
        if steps > limit:
            raise HolidayConfigurationError(start, limit)
        d = add_days(d, 1)
    return d


def compute_window(
    lead_time_days: int,
    range_days: int,
    cutoff_time: str | None,
    holidays: HolidaySet,
    blackout: FrozenSet[str],
    now: datetime | None = None,
    search_limit: int = HOLIDAY_SEARCH_LIMIT,
) -> AvailabilityWindow:
    now = now or datetime.now()
    lead = _clamp_int(lead_time_days, 0)
    rng = _clamp_int(range_days, 1)

    base = start_of_day(now)
    if is_past_cutoff(now, cutoff_time):
        base = add_days(base, 1)

    cursor = _skip_holidays(base, holidays, search_limit)
    for _ in range(lead):
        cursor = _skip_holidays(add_days(cursor, 1), holidays, search_limit)

    min_date = cursor
    steps = 0
    while is_blackout(min_date, blackout):
        steps += 1
        if steps > search_limit:
            raise HolidayConfigurationError(cursor, search_limit)
        min_date = add_days(min_date, 1)

    max_date = add_days(min_date, rng - 1)
    return AvailabilityWindow(min_date=min_date, max_date=max_date, blackout=blackout)


def window_for_settings(settings, now: datetime | None = None) -> AvailabilityWindow:
    """Window for a ShopDeliveryConfig or EffectiveSettings."""
    return compute_window(
        settings.lead_time_days,
        settings.range_days,
        settings.cutoff_time,
        build_holiday_set(settings.holidays),
        build_blackout_set(settings.blackout),
        now=now,
    )
