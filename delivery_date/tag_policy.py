from __future__ import annotations

from typing import AbstractSet, Iterable, Optional

from .settings_models import EffectiveSettings, OverridePatch, PolicyFlag, ShopDeliveryConfig, TagOverrideRule


def _base(config: ShopDeliveryConfig) -> EffectiveSettings:
    # Round-trip through a dict so nested models are never shared with the config
    return EffectiveSettings.model_validate(config.model_dump())


def match_override(rules: Iterable[TagOverrideRule], cart_tags: AbstractSet[str]) -> Optional[TagOverrideRule]:
    """First rule (in caller order) whose tag is on a cart product, else None."""
    for rule in rules or []:
        tag = getattr(rule, "tag", None)
        if not isinstance(tag, str) or not tag.strip():
            continue
        if tag.strip() in cart_tags:
            return rule
    return None


def apply_override(settings: EffectiveSettings, patch: OverridePatch) -> EffectiveSettings:
    """Field-level merge: only fields present in the patch replace the base."""
    ov = patch.present() if isinstance(patch, OverridePatch) else {}
    data = settings.model_dump()
    for field in ("lead_time_days", "range_days", "cutoff_time", "notice_text", "time_slots", "carrier_preset"):
        if field in ov:
            data[field] = ov[field]
    for flag in ("date", "time", "placement"):
        if f"show_{flag}" in ov:
            data["show"][flag] = ov[f"show_{flag}"]
    for flag in ("date", "time"):
        if f"require_{flag}" in ov:
            data["required"][flag] = ov[f"require_{flag}"]
    return EffectiveSettings.model_validate(data)


def resolve_policy(config: ShopDeliveryConfig, cart_tags: Iterable[str]) -> EffectiveSettings:
    """Deny tags first, then at most one override rule (first match wins)."""
    tags = frozenset(t.strip() for t in cart_tags or () if isinstance(t, str) and t.strip())
    effective = _base(config)

    if any(t in tags for t in config.deny_tags):
        effective.policy = PolicyFlag(disabled=True, reason="deny_tag")
        effective.required.placement = False
        return effective

    rule = match_override(config.tag_override_rules, tags)
    if rule is not None:
        effective = apply_override(effective, rule.override)

    effective.required.date = effective.show.date and effective.required.date
    effective.required.time = effective.show.time and effective.required.time
    effective.required.placement = False
    return effective
