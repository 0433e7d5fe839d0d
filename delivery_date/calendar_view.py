from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, FrozenSet, List

from .availability import AvailabilityWindow
from .calendar_sets import HolidaySet, is_blackout, is_holiday
from .time_rules import add_days, format_date

GRID_CELLS = 42  # six weeks


@dataclass(frozen=True)
class CalendarCell:
    date: str
    day: int
    in_month: bool
    holiday: bool
    blackout: bool
    selectable: bool
    today: bool


def grid_start(month: date, start_week: str = "sun") -> date:
    first = month.replace(day=1)
    sun_index = (first.weekday() + 1) % 7  # Sun=0 .. Sat=6
    offset = (sun_index + 6) % 7 if start_week == "mon" else sun_index
    return add_days(first, -offset)


def month_cells(
    month: date,
    window: AvailabilityWindow,
    holidays: HolidaySet,
    blackout: FrozenSet[str],
    today: date,
    start_week: str = "sun",
    disabled: bool = False,
) -> List[CalendarCell]:
    """Six-week grid for ``month``. Holidays are flagged but stay selectable."""
    start = grid_start(month, start_week)
    cells: List[CalendarCell] = []
    for i in range(GRID_CELLS):
        d = add_days(start, i)
        cells.append(CalendarCell(
            date=format_date(d),
            day=d.day,
            in_month=d.month == month.month,
            holiday=is_holiday(d, holidays),
            blackout=is_blackout(d, blackout),
            selectable=not disabled and window.is_selectable(d),
            today=d == today,
        ))
    return cells


def month_payload(month: date, cells: List[CalendarCell], start_week: str) -> Dict[str, Any]:
    return {
        "month": f"{month.year:04d}-{month.month:02d}",
        "startWeek": start_week,
        "cells": [_cell_json(c) for c in cells],
    }


def _cell_json(cell: CalendarCell) -> Dict[str, Any]:
    data = asdict(cell)
    data["inMonth"] = data.pop("in_month")
    return data
