#!/usr/bin/env python3
"""Print the delivery window for a settings row.

Usage: compute_window.py <settings.json> [--shop SHOP] [--now 2025-03-10T09:30]

The file holds either a single settings row or a settings file keyed by shop
domain (the format ``DELIVERY_SETTINGS_FILE`` uses); pass ``--shop`` for the latter.
"""
from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

# Ensure the repo root is on sys.path so `delivery_date` can be imported
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from delivery_date.availability import HolidayConfigurationError, window_for_settings  # noqa: E402
from delivery_date.calendar_sets import build_holiday_set  # noqa: E402
from delivery_date.settings_parser import parse_settings_row  # noqa: E402


def _flag(args: list, name: str) -> str | None:
    if name in args:
        i = args.index(name)
        if i + 1 < len(args):
            return args[i + 1]
    return None


def main():
    args = sys.argv[1:]
    if not args or args[0].startswith("--"):
        print("Usage: compute_window.py <settings.json> [--shop SHOP] [--now ISO]", file=sys.stderr)
        sys.exit(2)
    with open(args[0], "r", encoding="utf-8") as fh:
        data = json.load(fh)
    shop = _flag(args, "--shop")
    row = data.get(shop) if shop and isinstance(data, dict) else data
    if shop and row is None:
        print(f"No settings for shop {shop}", file=sys.stderr)
        sys.exit(1)
    now_raw = _flag(args, "--now")
    try:
        now = datetime.fromisoformat(now_raw) if now_raw else datetime.now()
    except ValueError:
        print(f"--now must be an ISO datetime, got {now_raw!r}", file=sys.stderr)
        sys.exit(2)

    config = parse_settings_row(row if isinstance(row, dict) else None)
    try:
        window = window_for_settings(config, now=now)
    except HolidayConfigurationError as e:
        print(json.dumps({"ok": False, "reason": "holiday_configuration", "message": str(e)}))
        sys.exit(1)
    out = {
        "ok": True,
        "now": now.isoformat(timespec="minutes"),
        **window.as_dict(),
        "disabledDates": window.disabled_dates(build_holiday_set(config.holidays)),
    }
    print(json.dumps(out, ensure_ascii=False))


if __name__ == "__main__":
    main()
