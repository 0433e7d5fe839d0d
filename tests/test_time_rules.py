from datetime import date, datetime

from delivery_date import time_rules as TR


def test_format_and_add_days():
    assert TR.format_date(date(2025, 3, 9)) == "2025-03-09"
    assert TR.format_date(datetime(2025, 3, 9, 23, 59)) == "2025-03-09"
    assert TR.add_days(date(2025, 2, 28), 1) == date(2025, 3, 1)
    assert TR.add_days(datetime(2025, 12, 31, 10, 0), 1) == datetime(2026, 1, 1, 10, 0)


def test_weekday_tag_is_sunday_first():
    assert TR.weekday_tag(date(2025, 3, 9)) == "Sun"
    assert TR.weekday_tag(date(2025, 3, 10)) == "Mon"
    assert TR.weekday_tag(date(2025, 3, 15)) == "Sat"


def test_parse_hhmm_tolerant():
    assert TR.parse_hhmm("15:30") == (15, 30)
    assert TR.parse_hhmm("9") == (9, 0)
    assert TR.parse_hhmm("xx:yy") == (0, 0)
    assert TR.parse_hhmm(None) == (0, 0)


def test_strict_formats():
    assert TR.is_valid_hhmm(" 09:05 ")
    assert not TR.is_valid_hhmm("24:00")
    assert not TR.is_valid_hhmm("9:05")
    assert TR.is_valid_ymd("2025-03-20")
    assert not TR.is_valid_ymd("2025-3-20")
    assert TR.parse_ymd("2025-02-30") is None
    assert TR.parse_month("2025-03") == date(2025, 3, 1)
    assert TR.parse_month("2025-13") is None


def test_cutoff_is_strictly_after():
    assert not TR.is_past_cutoff(datetime(2025, 3, 10, 15, 0), "15:00")
    assert TR.is_past_cutoff(datetime(2025, 3, 10, 15, 1), "15:00")
    assert not TR.is_past_cutoff(datetime(2025, 3, 10, 23, 0), "")
    assert not TR.is_past_cutoff(datetime(2025, 3, 10, 23, 0), "late")
