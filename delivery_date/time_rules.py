from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Tuple, TypeVar


# Storefront ordering: index matches JS getDay() (Sun=0 .. Sat=6)
WEEKDAY_TAGS: Tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")

D = TypeVar("D", date, datetime)


def format_date(d: date) -> str:
    """Shop-local calendar date as YYYY-MM-DD (time component ignored)."""
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def add_days(d: D, n: int) -> D:
    return d + timedelta(days=n)


def weekday_tag(d: date) -> str:
    # Python weekday: Mon=0 .. Sun=6
    return WEEKDAY_TAGS[(d.weekday() + 1) % 7]


def parse_hhmm(s: str | None) -> Tuple[int, int]:
    """Tolerant HH:mm parse. Missing or non-numeric parts become 0."""
    parts = (str(s or "0:0").split(":") + ["0"])[:2]
    out = []
    for p in parts:
        try:
            out.append(int(p.strip()))
        except ValueError:
            out.append(0)
    return out[0], out[1]


def is_valid_hhmm(s: str | None) -> bool:
    if not isinstance(s, str) or not s.strip():
        return False
    return bool(HHMM_RE.match(s.strip()))


def is_valid_ymd(s: str | None) -> bool:
    return isinstance(s, str) and bool(YMD_RE.match(s))


def parse_ymd(s: str | None) -> date | None:
    if not is_valid_ymd(s):
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_month(s: str | None) -> date | None:
    m = MONTH_RE.match((s or "").strip())
    if not m:
        return None
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        return None
    return date(year, month, 1)


def start_of_day(now: datetime) -> date:
    return date(now.year, now.month, now.day)


def is_past_cutoff(now: datetime, cutoff_time: str | None) -> bool:
    """True when a valid cutoff is set and `now` is strictly after it today."""
    if not is_valid_hhmm(cutoff_time):
        return False
    hh, mm = parse_hhmm(cutoff_time.strip())
    cutoff = datetime(now.year, now.month, now.day, hh, mm, 0, 0)
    return now.replace(tzinfo=None) > cutoff
