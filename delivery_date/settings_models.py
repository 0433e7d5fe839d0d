from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def uniq_strings(values: Any) -> List[str]:
    """Trimmed, non-empty strings in first-seen order."""
    out: List[str] = []
    seen = set()
    for v in values or []:
        s = str(v if v is not None else "").strip()
        if not s or s in seen:
            continue
        seen.add(s)
        out.append(s)
    return out


class CamelModel(BaseModel):
    # JSON keys are camelCase (leadTimeDays, attrNames, ...) like the theme script expects
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShowFlags(CamelModel):
    date: bool = True
    time: bool = True
    placement: bool = False


class RequiredFlags(CamelModel):
    date: bool = True
    time: bool = False
    placement: bool = False


class AttrNames(CamelModel):
    date: str = "delivery_date"
    time: str = "delivery_time"
    placement: str = "delivery_placement"


class CalendarColors(CamelModel):
    disabled_bg: str = "#f1f2f3"
    blackout_bg: str = "#fff2cc"
    disabled_text: str = "#8c9196"
    accent: str = "#005bd3"
    selected_bg: str = "#005bd3"
    selected_text: str = "#ffffff"
    today_ring: str = "#00a47c"


class CalendarUi(CamelModel):
    mode: Literal["popup", "inline"] = "popup"
    start_week: Literal["sun", "mon"] = "sun"
    colors: CalendarColors = Field(default_factory=CalendarColors)


class OverridePatch(CamelModel):
    """Partial settings applied by a tag rule. None means "leave as is"."""

    lead_time_days: Optional[int] = None
    range_days: Optional[int] = None
    cutoff_time: Optional[str] = None
    show_date: Optional[bool] = None
    show_time: Optional[bool] = None
    show_placement: Optional[bool] = None
    require_date: Optional[bool] = None
    require_time: Optional[bool] = None
    notice_text: Optional[str] = None
    time_slots: Optional[List[str]] = None
    carrier_preset: Optional[str] = None

    @field_validator("time_slots")
    def _dedupe_slots(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else uniq_strings(v)

    def present(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TagOverrideRule(CamelModel):
    tag: str
    override: OverridePatch = Field(default_factory=OverridePatch)


class ShopDeliveryConfig(CamelModel):
    lead_time_days: int = 1
    range_days: int = 30
    cutoff_time: str = ""
    # Raw tokens: weekday tags ("Sun".."Sat") and/or YYYY-MM-DD dates
    holidays: List[str] = Field(default_factory=list)
    blackout: List[str] = Field(default_factory=list)
    time_slots: List[str] = Field(default_factory=list)
    notice_text: str = ""
    carrier_preset: str = "custom"
    show: ShowFlags = Field(default_factory=ShowFlags)
    required: RequiredFlags = Field(default_factory=RequiredFlags)
    attr_names: AttrNames = Field(default_factory=AttrNames)
    deny_tags: List[str] = Field(default_factory=list)
    tag_override_rules: List[TagOverrideRule] = Field(default_factory=list)
    calendar_ui: CalendarUi = Field(default_factory=CalendarUi)

    @field_validator("time_slots", "deny_tags")
    def _dedupe(cls, v: List[str]) -> List[str]:
        return uniq_strings(v)

    @model_validator(mode="after")
    def _required_follows_show(self):
        # show OFF forces required OFF; placement is never required
        self.required.date = self.required.date and self.show.date
        self.required.time = self.required.time and self.show.time
        self.required.placement = False
        return self


class PolicyFlag(CamelModel):
    disabled: bool = False
    reason: Optional[Literal["deny_tag"]] = None


class EffectiveSettings(ShopDeliveryConfig):
    policy: PolicyFlag = Field(default_factory=PolicyFlag)

    def to_payload(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude={"deny_tags", "tag_override_rules"})
        if data["policy"].get("reason") is None:
            data["policy"].pop("reason", None)
        return data

