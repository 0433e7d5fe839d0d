from delivery_date.tag_cache import TTLCache


class FakeClock:
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("shop::1", frozenset({"a"}), ttl=8)
    clock.t = 7.9
    assert cache.get("shop::1") == frozenset({"a"})
    clock.t = 8.1
    assert cache.get("shop::1") is None
    assert len(cache) == 0


def test_last_write_wins():
    cache = TTLCache(clock=FakeClock())
    cache.set("k", 1, ttl=10)
    cache.set("k", 2, ttl=10)
    assert cache.get("k") == 2


def test_full_cache_evicts_soonest_expiry():
    clock = FakeClock()
    cache = TTLCache(clock=clock, max_entries=2)
    cache.set("a", 1, ttl=5)
    cache.set("b", 2, ttl=50)
    cache.set("c", 3, ttl=50)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_clear():
    cache = TTLCache(clock=FakeClock())
    cache.set("a", 1, ttl=5)
    cache.clear()
    assert cache.get("a") is None
