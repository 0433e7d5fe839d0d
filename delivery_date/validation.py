from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .availability import AvailabilityWindow
from .calendar_sets import is_blackout
from .settings_models import EffectiveSettings
from .time_rules import format_date, is_valid_ymd, parse_ymd


@dataclass(frozen=True)
class ValidationVerdict:
    ok: bool
    reason: Optional[str] = None
    message: str = "OK"
    min_date: Optional[str] = None
    max_date: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, "message": self.message}
        out: Dict[str, Any] = {"ok": False, "reason": self.reason, "message": self.message}
        if self.min_date is not None:
            out["minDate"] = self.min_date
            out["maxDate"] = self.max_date
        return out


def _reject(reason: str, message: str, **kw) -> ValidationVerdict:
    return ValidationVerdict(ok=False, reason=reason, message=message, **kw)


def validate_selection(
    settings: EffectiveSettings,
    window: AvailabilityWindow,
    date_str: str | None,
    time_str: str | None,
) -> ValidationVerdict:
    date_str = (date_str or "").strip()
    time_str = (time_str or "").strip()

    if date_str and (not is_valid_ymd(date_str) or parse_ymd(date_str) is None):
        return _reject("invalid_date_format", "Delivery date must be YYYY-MM-DD.")
    if settings.policy.disabled:
        # Delivery date selection is off for this cart; nothing to check
        return ValidationVerdict(ok=True)

    if settings.show.date:
        if settings.required.date and not date_str:
            return _reject("date_required", "Please choose a delivery date.")
        if date_str:
            d = parse_ymd(date_str)
            min_s, max_s = format_date(window.min_date), format_date(window.max_date)
            if not window.contains(d):
                return _reject(
                    "out_of_range",
                    f"Delivery date must be between {min_s} and {max_s}.",
                    min_date=min_s,
                    max_date=max_s,
                )
            if is_blackout(d, window.blackout):
                return _reject("disabled_date", "Delivery is not available on that date.")

    if settings.show.time:
        if settings.required.time and not time_str:
            return _reject("time_required", "Please choose a delivery time slot.")
        if time_str and time_str not in settings.time_slots:
            return _reject("invalid_time_slot", "Unknown delivery time slot.")

    return ValidationVerdict(ok=True)
