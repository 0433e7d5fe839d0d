"""Settings rows <-> ShopDeliveryConfig.

Rows are what the settings store keeps per shop: flat columns, with list and
object columns JSON-encoded (``holidaysJson``, ``tagOverridesJson``, ...).
Reading is tolerant: anything malformed falls back to defaults or is dropped,
so the policy engine always receives a well-formed config. Writing is strict:
``validate_settings_update`` rejects bad input with readable messages.
"""
from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional

from pydantic.alias_generators import to_camel

from .calendar_sets import build_blackout_set, build_holiday_set, covers_every_weekday
from .config import MAX_WINDOW_DAYS
from .settings_models import (
    AttrNames,
    CalendarColors,
    CalendarUi,
    OverridePatch,
    RequiredFlags,
    ShopDeliveryConfig,
    ShowFlags,
    TagOverrideRule,
    uniq_strings,
)
from .time_rules import WEEKDAY_TAGS, is_valid_hhmm, is_valid_ymd


CARRIER_PRESETS: Dict[str, List[str]] = {
    "yamato": ["08:00-12:00", "12:00-14:00", "14:00-16:00", "16:00-18:00", "18:00-20:00", "19:00-21:00"],
    "sagawa": ["08:00-12:00", "12:00-14:00", "14:00-16:00", "16:00-18:00", "18:00-20:00", "19:00-21:00"],
    "yuupack": ["午前中", "12:00-14:00", "14:00-16:00", "16:00-18:00", "18:00-20:00", "19:00-21:00"],
    "fukuyama": ["指定なし"],
    "seino_mini": ["指定なし"],
    "seino_tsuhan": ["指定なし"],
    "nittsu": ["指定なし"],
    "custom": [],
}


class SettingsValidationError(ValueError):
    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(" / ".join(self.errors))


# ------------------------------------------------------------------
# Tolerant read side
# ------------------------------------------------------------------

def safe_json_array(val: Any) -> List[Any]:
    if isinstance(val, list):
        return val
    if not isinstance(val, str):
        return []
    try:
        v = json.loads(val or "[]")
    except ValueError:
        return []
    return v if isinstance(v, list) else []


def safe_json_object(val: Any) -> Dict[str, Any]:
    if isinstance(val, dict):
        return val
    if not isinstance(val, str):
        return {}
    try:
        v = json.loads(val or "{}")
    except ValueError:
        return {}
    return v if isinstance(v, dict) else {}


def _number(v: Any) -> Optional[int]:
    # bool is an int subclass; never treat it as a day count
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and math.isfinite(v):
        return int(v)
    if isinstance(v, str):
        try:
            f = float(v.strip())
        except ValueError:
            return None
        return int(f) if math.isfinite(f) else None
    return None


def _days(n: int, lower: int) -> int:
    return min(MAX_WINDOW_DAYS, max(lower, n))


def _bool(v: Any, default: bool) -> bool:
    return v if isinstance(v, bool) else default


def _text(v: Any, default: str) -> str:
    return v if isinstance(v, str) and v else default


def _strings(values: List[Any]) -> List[str]:
    return uniq_strings(v for v in values if isinstance(v, str))


def parse_override(raw: Any) -> OverridePatch:
    ov = raw if isinstance(raw, dict) else {}
    patch: Dict[str, Any] = {}
    for key, field, lower in (("leadTimeDays", "lead_time_days", 0), ("rangeDays", "range_days", 1)):
        if key in ov and not isinstance(ov[key], (bool, str)):
            n = _number(ov[key])
            if n is not None:
                patch[field] = _days(n, lower)
    for key, field in (
        ("showDate", "show_date"),
        ("showTime", "show_time"),
        ("showPlacement", "show_placement"),
        ("requireDate", "require_date"),
        ("requireTime", "require_time"),
    ):
        if isinstance(ov.get(key), bool):
            patch[field] = ov[key]
    for key, field in (("cutoffTime", "cutoff_time"), ("noticeText", "notice_text"), ("carrierPreset", "carrier_preset")):
        if isinstance(ov.get(key), str):
            patch[field] = ov[key]
    if isinstance(ov.get("timeSlots"), list):
        patch["time_slots"] = _strings(ov["timeSlots"])
    return OverridePatch(**patch)


def parse_override_rules(raw: Any) -> List[TagOverrideRule]:
    rules: List[TagOverrideRule] = []
    for item in safe_json_array(raw):
        if not isinstance(item, dict):
            continue
        tag = str(item.get("tag") or "").strip()
        if not tag:
            continue
        rules.append(TagOverrideRule(tag=tag, override=parse_override(item.get("override"))))
    return rules


def _calendar_ui(row: Dict[str, Any]) -> CalendarUi:
    extra = safe_json_object(row.get("calendarUiJson"))
    mode = extra.get("mode", row.get("calendarUiMode"))
    start_week = extra.get("startWeek", row.get("calendarStartWeek"))
    colors_raw = extra.get("colors") if isinstance(extra.get("colors"), dict) else {}
    colors = CalendarColors()
    for name in CalendarColors.model_fields:
        alias = to_camel(name)
        column = "cal" + alias[0].upper() + alias[1:]
        value = colors_raw.get(alias, row.get(column))
        if isinstance(value, str) and value:
            setattr(colors, name, value)
    return CalendarUi(
        mode="inline" if mode == "inline" else "popup",
        start_week="mon" if start_week == "mon" else "sun",
        colors=colors,
    )


def parse_settings_row(row: Dict[str, Any] | None) -> ShopDeliveryConfig:
    """Build a config from a stored row. Never raises."""
    row = row if isinstance(row, dict) else {}
    lead = _number(row.get("leadTimeDays"))
    rng = _number(row.get("rangeDays"))
    cutoff = row.get("cutoffTime")

    show = ShowFlags(
        date=_bool(row.get("showDate"), True),
        time=_bool(row.get("showTime"), True),
        placement=_bool(row.get("showPlacement"), False),
    )
    required = RequiredFlags(
        date=_bool(row.get("requireDate"), True),
        time=_bool(row.get("requireTime"), False),
    )
    holidays = build_holiday_set(safe_json_array(row.get("holidaysJson")))
    blackout = build_blackout_set(safe_json_array(row.get("blackoutJson")))

    return ShopDeliveryConfig(
        lead_time_days=_days(1 if lead is None else lead, 0),
        range_days=_days(30 if rng is None else rng, 1),
        cutoff_time=cutoff.strip() if isinstance(cutoff, str) else "",
        holidays=sorted(holidays.weekdays, key=WEEKDAY_TAGS.index) + sorted(holidays.dates),
        blackout=sorted(blackout),
        time_slots=_strings(safe_json_array(row.get("timeSlotsJson"))),
        notice_text=row.get("noticeText") if isinstance(row.get("noticeText"), str) else "",
        carrier_preset=_text(row.get("carrierPreset"), "custom"),
        show=show,
        required=required,
        attr_names=AttrNames(
            date=_text(row.get("attrDateName"), "delivery_date"),
            time=_text(row.get("attrTimeName"), "delivery_time"),
            placement=_text(row.get("attrPlacementName"), "delivery_placement"),
        ),
        deny_tags=_strings(safe_json_array(row.get("denyProductTagsJson"))),
        tag_override_rules=parse_override_rules(row.get("tagOverridesJson")),
        calendar_ui=_calendar_ui(row),
    )


# ------------------------------------------------------------------
# Strict write side
# ------------------------------------------------------------------

def _strict_int(v: Any) -> Optional[int]:
    n = _number(v)
    if n is None or (isinstance(v, float) and not v.is_integer()):
        return None
    return n


def _lines(v: Any) -> List[str]:
    if isinstance(v, str):
        v = v.splitlines()
    if not isinstance(v, list):
        return []
    return [s.strip() for s in v if isinstance(s, str) and s.strip()]


def _validate_override_rules(raw: Any, errors: List[str]) -> List[Dict[str, Any]]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw or "[]")
        except ValueError:
            errors.append("Override rules are not valid JSON")
            return []
    if not isinstance(raw, list):
        errors.append("Override rules must be a list")
        return []

    seen = set()
    out: List[Dict[str, Any]] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        tag = str(item.get("tag") or "").strip()
        if not tag:
            errors.append("Override rule has an empty tag")
            continue
        if tag in seen:
            errors.append(f"Duplicate override rule tag: {tag}")
            continue
        seen.add(tag)

        ov = item.get("override") if isinstance(item.get("override"), dict) else {}
        override: Dict[str, Any] = {}
        for key, lower in (("leadTimeDays", 0), ("rangeDays", 1)):
            if ov.get(key) in (None, ""):
                continue
            n = _number(ov[key])
            if n is None or not lower <= n <= MAX_WINDOW_DAYS:
                errors.append(f"{key} must be an integer between {lower} and {MAX_WINDOW_DAYS} (tag: {tag})")
                continue
            override[key] = n
        cutoff = ov.get("cutoffTime")
        if isinstance(cutoff, str) and cutoff.strip():
            if not is_valid_hhmm(cutoff):
                errors.append(f"cutoffTime must be HH:mm (tag: {tag})")
            else:
                override["cutoffTime"] = cutoff.strip()
        for key in ("showDate", "requireDate", "showTime", "requireTime", "showPlacement"):
            if key in ov:
                override[key] = bool(ov[key])
        if not override.get("showDate", True):
            override["requireDate"] = False
        if not override.get("showTime", True):
            override["requireTime"] = False
        if isinstance(ov.get("noticeText"), str):
            override["noticeText"] = ov["noticeText"]

        preset = str(ov.get("carrierPreset") or "").strip()
        if preset:
            if preset not in CARRIER_PRESETS:
                errors.append(f"Unknown carrier preset (tag: {tag})")
                continue
            override["carrierPreset"] = preset
            slots = _lines(ov.get("timeSlots")) if preset == "custom" else CARRIER_PRESETS[preset]
            override["timeSlots"] = uniq_strings(slots)
        elif "timeSlots" in ov:
            override["timeSlots"] = uniq_strings(_lines(ov.get("timeSlots")))

        out.append({"tag": tag, "override": override})
    return out


def validate_settings_update(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Validate an admin update and return the row columns to write.

    Only keys present in ``changes`` are validated and returned, so basic,
    calendar and tag settings can be saved independently.
    """
    if not isinstance(changes, dict):
        raise SettingsValidationError(["Settings update must be an object"])
    errors: List[str] = []
    row: Dict[str, Any] = {}

    if "leadTimeDays" in changes:
        n = _strict_int(changes["leadTimeDays"])
        if n is None or not 0 <= n <= MAX_WINDOW_DAYS:
            errors.append(f"leadTimeDays must be an integer between 0 and {MAX_WINDOW_DAYS}")
        else:
            row["leadTimeDays"] = n
    if "rangeDays" in changes:
        n = _strict_int(changes["rangeDays"])
        if n is None or not 1 <= n <= MAX_WINDOW_DAYS:
            errors.append(f"rangeDays must be an integer between 1 and {MAX_WINDOW_DAYS}")
        else:
            row["rangeDays"] = n
    if "cutoffTime" in changes:
        cutoff = changes["cutoffTime"] or ""
        if not isinstance(cutoff, str) or (cutoff.strip() and not is_valid_hhmm(cutoff)):
            errors.append("cutoffTime must be HH:mm (e.g. 15:00) or empty")
        else:
            row["cutoffTime"] = cutoff.strip()

    if "holidays" in changes:
        tokens = _lines(changes["holidays"])
        unknown = [t for t in tokens if t not in WEEKDAY_TAGS and not is_valid_ymd(t)]
        if unknown:
            errors.append(f"Unrecognised holiday entries: {', '.join(unknown)}")
        holidays = build_holiday_set(tokens)
        if covers_every_weekday(holidays):
            errors.append("Holidays cannot cover all seven weekdays")
        row["holidaysJson"] = json.dumps(uniq_strings(tokens), ensure_ascii=False)
    if "blackout" in changes:
        tokens = _lines(changes["blackout"])
        unknown = [t for t in tokens if not is_valid_ymd(t)]
        if unknown:
            errors.append(f"Blackout dates must be YYYY-MM-DD: {', '.join(unknown)}")
        row["blackoutJson"] = json.dumps(uniq_strings(tokens), ensure_ascii=False)

    if "carrierPreset" in changes or "timeSlots" in changes:
        preset = str(changes.get("carrierPreset") or "custom").strip()
        if preset not in CARRIER_PRESETS:
            errors.append("Unknown carrier preset")
        else:
            row["carrierPreset"] = preset
            slots = _lines(changes.get("timeSlots")) if preset == "custom" else CARRIER_PRESETS[preset]
            row["timeSlotsJson"] = json.dumps(uniq_strings(slots), ensure_ascii=False)
    if "noticeText" in changes:
        row["noticeText"] = str(changes["noticeText"] or "")

    show = changes.get("show") if isinstance(changes.get("show"), dict) else {}
    required = changes.get("required") if isinstance(changes.get("required"), dict) else {}
    for key in ("date", "time", "placement"):
        if key in show:
            row["show" + key.capitalize()] = bool(show[key])
    for key in ("date", "time"):
        if key in required:
            shown = bool(show.get(key, True))
            row["require" + key.capitalize()] = bool(required[key]) and shown

    attr = changes.get("attrNames") if isinstance(changes.get("attrNames"), dict) else {}
    for key in ("date", "time", "placement"):
        if key in attr:
            name = str(attr[key] or "").strip()
            if not name:
                errors.append(f"Attribute name for {key} is empty")
            else:
                row["attr" + key.capitalize() + "Name"] = name

    if "denyTags" in changes:
        row["denyProductTagsJson"] = json.dumps(uniq_strings(_lines(changes["denyTags"])), ensure_ascii=False)
    if "tagOverrideRules" in changes:
        rules = _validate_override_rules(changes["tagOverrideRules"], errors)
        row["tagOverridesJson"] = json.dumps(rules, ensure_ascii=False)

    if isinstance(changes.get("calendarUi"), dict):
        ui = changes["calendarUi"]
        colors = ui.get("colors") if isinstance(ui.get("colors"), dict) else {}
        row["calendarUiJson"] = json.dumps({
            "mode": "inline" if ui.get("mode") == "inline" else "popup",
            "startWeek": "mon" if ui.get("startWeek") == "mon" else "sun",
            "colors": {k: v for k, v in colors.items() if isinstance(v, str) and v},
        })

    if errors:
        raise SettingsValidationError(errors)
    return row
