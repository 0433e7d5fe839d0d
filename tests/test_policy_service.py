import json
import unittest
from datetime import datetime

from delivery_date.availability import HolidayConfigurationError
from delivery_date.policy_service import DeliveryPolicyService
from delivery_date.settings_store import InMemorySettingsStore
from delivery_date.tag_cache import TTLCache

SHOP = "demo.myshopify.com"
NOW = datetime(2025, 3, 10, 10, 0)  # Monday

ROW = {
    "leadTimeDays": 1,
    "rangeDays": 3,
    "cutoffTime": "15:00",
    "timeSlotsJson": json.dumps(["08:00-12:00", "14:00-16:00"]),
    "denyProductTagsJson": json.dumps(["frozen"]),
    "tagOverridesJson": json.dumps([
        {"tag": "bulky", "override": {"leadTimeDays": 3, "rangeDays": 5}},
    ]),
}


class FakeFetcher:
    def __init__(self, tags=None, error=None):
        self.tags = set(tags or ())
        self.error = error
        self.calls = []

    def __call__(self, shop, ids, token):
        self.calls.append((shop, list(ids), token))
        if self.error:
            raise self.error
        return set(self.tags)


class FakeClock:
    t = 0.0

    def __call__(self):
        return self.t


def make_service(fetcher, token="tok", row=None, clock=None):
    store = InMemorySettingsStore({SHOP: dict(row or ROW)})
    return DeliveryPolicyService(
        store,
        fetch_tags=fetcher,
        cache=TTLCache(clock=clock or FakeClock()),
        token_for=lambda shop: token,
        clock=lambda: NOW,
    )


class TestPolicy(unittest.TestCase):
    def test_no_products_no_lookup(self):
        fetcher = FakeFetcher({"frozen"})
        res = make_service(fetcher).policy(SHOP)
        self.assertEqual(fetcher.calls, [])
        self.assertEqual(res.as_dict()["computed"], {"minDate": "2025-03-11", "maxDate": "2025-03-13"})
        self.assertFalse(res.settings.policy.disabled)

    def test_deny_tag_disables(self):
        res = make_service(FakeFetcher({"frozen", "bulky"})).policy(SHOP, ["1", "2"])
        body = res.as_dict()
        self.assertTrue(body["ok"])
        self.assertEqual(body["settings"]["policy"], {"disabled": True, "reason": "deny_tag"})

    def test_override_changes_window(self):
        res = make_service(FakeFetcher({"bulky"})).policy(SHOP, [7])
        self.assertEqual(res.window.as_dict(), {"minDate": "2025-03-13", "maxDate": "2025-03-17"})

    def test_lookup_failure_fails_open(self):
        fetcher = FakeFetcher(error=RuntimeError("boom"))
        svc = make_service(fetcher)
        res = svc.policy(SHOP, [1])
        self.assertFalse(res.settings.policy.disabled)
        self.assertEqual(res.settings.lead_time_days, 1)
        # failures are not cached
        svc.policy(SHOP, [1])
        self.assertEqual(len(fetcher.calls), 2)

    def test_missing_token_skips_lookup(self):
        fetcher = FakeFetcher({"frozen"})
        res = make_service(fetcher, token=None).policy(SHOP, [1])
        self.assertEqual(fetcher.calls, [])
        self.assertFalse(res.settings.policy.disabled)

    def test_tags_cached_per_product_set(self):
        clock = FakeClock()
        fetcher = FakeFetcher({"bulky"})
        svc = make_service(fetcher, clock=clock)
        svc.policy(SHOP, [2, 1])
        svc.policy(SHOP, ["1", "2", "2"])
        self.assertEqual(len(fetcher.calls), 1)
        clock.t = svc.cache_ttl + 1
        svc.policy(SHOP, [1, 2])
        self.assertEqual(len(fetcher.calls), 2)

    def test_cache_key(self):
        self.assertEqual(DeliveryPolicyService.cache_key(SHOP, ["3", 1]), f"{SHOP}::1,3")

    def test_unknown_shop_uses_defaults(self):
        res = make_service(FakeFetcher()).policy("other.myshopify.com", now=NOW)
        self.assertEqual(res.window.as_dict(), {"minDate": "2025-03-11", "maxDate": "2025-04-09"})

    def test_all_weekday_holidays_raise(self):
        row = {"holidaysJson": json.dumps(["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"])}
        with self.assertRaises(HolidayConfigurationError):
            make_service(FakeFetcher(), row=row).policy(SHOP)


class TestValidate(unittest.TestCase):
    def test_out_of_range(self):
        v = make_service(FakeFetcher()).validate(SHOP, "2025-03-20", "")
        self.assertEqual(v.as_dict()["reason"], "out_of_range")
        self.assertEqual(v.min_date, "2025-03-11")
        self.assertEqual(v.max_date, "2025-03-13")

    def test_denied_cart_accepts_anything_well_formed(self):
        v = make_service(FakeFetcher({"frozen"})).validate(SHOP, "2030-01-01", "", product_ids=[5])
        self.assertTrue(v.ok)

    def test_override_applies_to_validation(self):
        svc = make_service(FakeFetcher({"bulky"}))
        self.assertEqual(svc.validate(SHOP, "2025-03-12", "", product_ids=[9]).reason, "out_of_range")
        self.assertTrue(svc.validate(SHOP, "2025-03-16", "08:00-12:00", product_ids=[9]).ok)


class TestViews(unittest.TestCase):
    def test_options_listing(self):
        row = dict(ROW, rangeDays=7, holidaysJson=json.dumps(["Sun"]), blackoutJson=json.dumps(["2025-03-12", "2025-05-01"]))
        out = make_service(FakeFetcher(), row=row).options(SHOP)
        self.assertEqual(out["minDate"], "2025-03-11")
        self.assertEqual(out["maxDate"], "2025-03-17")
        self.assertEqual(out["disabledDates"], ["2025-03-12", "2025-03-16"])
        self.assertEqual(out["blackoutDates"], ["2025-03-12"])
        self.assertEqual(out["timeSlots"], ["08:00-12:00", "14:00-16:00"])

    def test_storefront_settings_hide_tag_rules(self):
        out = make_service(FakeFetcher()).storefront_settings(SHOP)
        self.assertNotIn("denyTags", out)
        self.assertNotIn("tagOverrideRules", out)
        self.assertEqual(out["leadTimeDays"], 1)
        self.assertEqual(out["computed"]["minDate"], "2025-03-11")

    def test_calendar_defaults_to_min_date_month(self):
        out = make_service(FakeFetcher()).calendar(SHOP)
        self.assertEqual(out["month"], "2025-03")
        self.assertEqual(out["today"], "2025-03-10")
        self.assertEqual(len(out["cells"]), 42)
        selectable = [c["date"] for c in out["cells"] if c["selectable"]]
        self.assertEqual(selectable, ["2025-03-11", "2025-03-12", "2025-03-13"])


if __name__ == "__main__":
    unittest.main()
