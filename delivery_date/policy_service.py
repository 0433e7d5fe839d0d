from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Set

from .availability import AvailabilityWindow, compute_window, window_for_settings
from .calendar_sets import build_blackout_set, build_holiday_set
from .calendar_view import month_cells, month_payload
from .config import TAGS_CACHE_TTL_SECONDS
from .settings_models import EffectiveSettings
from .settings_store import SettingsStore, get_settings_store
from .shopify_client import admin_token, fetch_product_tags, normalize_product_ids
from .tag_cache import TTLCache
from .tag_policy import resolve_policy
from .time_rules import format_date, parse_ymd, start_of_day
from .validation import ValidationVerdict, validate_selection

logger = logging.getLogger(__name__)

TagFetcher = Callable[[str, list, str], Set[str]]


@dataclass(frozen=True)
class PolicyResult:
    settings: EffectiveSettings
    window: AvailabilityWindow

    def as_dict(self) -> Dict[str, Any]:
        return {"ok": True, "settings": self.settings.to_payload(), "computed": self.window.as_dict()}


class DeliveryPolicyService:
    def __init__(
        self,
        store: SettingsStore,
        fetch_tags: TagFetcher = fetch_product_tags,
        cache: Optional[TTLCache] = None,
        token_for: Callable[[str], Optional[str]] = admin_token,
        clock: Callable[[], datetime] = datetime.now,
        cache_ttl: float = TAGS_CACHE_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.fetch_tags = fetch_tags
        self.cache = cache if cache is not None else TTLCache()
        self.token_for = token_for
        self.clock = clock
        self.cache_ttl = cache_ttl

    # ---- cart tags -------------------------------------------------

    @staticmethod
    def cache_key(shop: str, product_ids: Iterable[Any]) -> str:
        ids = normalize_product_ids(product_ids)
        return f"{shop}::{','.join(str(i) for i in ids)}"

    def cart_tags(self, shop: str, product_ids: Iterable[Any]) -> FrozenSet[str]:
        """Tags across the cart's products. Lookup failures give an empty set."""
        ids = normalize_product_ids(product_ids)
        if not ids:
            return frozenset()
        key = self.cache_key(shop, ids)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            token = self.token_for(shop)
            if not token:
                logger.warning("No Admin API token for %s; skipping tag policy", shop)
                return frozenset()
            tags = frozenset(self.fetch_tags(shop, ids, token))
        except Exception as e:
            logger.warning("Product tag lookup failed for %s -> continue without tag policy: %s", shop, e)
            return frozenset()
        self.cache.set(key, tags, self.cache_ttl)
        return tags

    # ---- policy ----------------------------------------------------

    def _now(self, now: Optional[datetime]) -> datetime:
        return now or self.clock()

    def policy(self, shop: str, product_ids: Iterable[Any] = (), now: Optional[datetime] = None) -> PolicyResult:
        config = self.store.get_config(shop)
        effective = resolve_policy(config, self.cart_tags(shop, product_ids))
        window = window_for_settings(effective, now=self._now(now))
        return PolicyResult(settings=effective, window=window)

    def validate(
        self,
        shop: str,
        date_str: str | None,
        time_str: str | None,
        product_ids: Iterable[Any] = (),
        now: Optional[datetime] = None,
    ) -> ValidationVerdict:
        result = self.policy(shop, product_ids, now=now)
        return validate_selection(result.settings, result.window, date_str, time_str)

    # ---- storefront / admin views ----------------------------------

    def storefront_settings(self, shop: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Base settings for the theme script plus the computed window."""
        config = self.store.get_config(shop)
        window = window_for_settings(config, now=self._now(now))
        payload = config.model_dump(by_alias=True, exclude={"deny_tags", "tag_override_rules"})
        payload["computed"] = window.as_dict()
        return payload

    def options(self, shop: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        config = self.store.get_config(shop)
        holidays = build_holiday_set(config.holidays)
        blackout = build_blackout_set(config.blackout)
        window = compute_window(
            config.lead_time_days, config.range_days, config.cutoff_time, holidays, blackout, now=self._now(now)
        )
        return {
            **window.as_dict(),
            "disabledDates": window.disabled_dates(holidays),
            "blackoutDates": sorted(b for b in blackout if parse_ymd(b) and window.contains(parse_ymd(b))),
            "timeSlots": config.time_slots,
            "cutoffTime": config.cutoff_time,
            "leadTimeDays": config.lead_time_days,
            "rangeDays": config.range_days,
        }

    def calendar(
        self,
        shop: str,
        month: Optional[date] = None,
        product_ids: Iterable[Any] = (),
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = self._now(now)
        result = self.policy(shop, product_ids, now=now)
        settings = result.settings
        month = month or result.window.min_date
        start_week = settings.calendar_ui.start_week
        cells = month_cells(
            month,
            result.window,
            build_holiday_set(settings.holidays),
            build_blackout_set(settings.blackout),
            today=start_of_day(now),
            start_week=start_week,
            disabled=settings.policy.disabled,
        )
        payload = month_payload(month, cells, start_week)
        payload["computed"] = result.window.as_dict()
        payload["today"] = format_date(start_of_day(now))
        payload["policy"] = settings.to_payload()["policy"]
        return payload


@lru_cache(maxsize=1)
def get_policy_service() -> DeliveryPolicyService:
    return DeliveryPolicyService(get_settings_store())
