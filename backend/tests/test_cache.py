from __future__ import annotations

from tabi.core.cache import CacheBackend, build_cache_key


def test_remember_loads_once_then_hits():
    cache = CacheBackend()
    calls = []

    def _loader():
        calls.append(1)
        return {"days": 2}

    assert cache.remember("trip:detail", "t1", 30, _loader) == {"days": 2}
    assert cache.remember("trip:detail", "t1", 30, _loader) == {"days": 2}
    assert len(calls) == 1
    assert (cache.hits, cache.misses) == (1, 1)


def test_remember_skips_store_when_key_invalidated_during_load():
    cache = CacheBackend()

    def _loader():
        cache.invalidate("trip:detail", "t1")
        return "stale"

    assert cache.remember("trip:detail", "t1", 30, _loader) == "stale"
    assert cache.get("trip:detail", "t1") is None
    assert cache.remember("trip:detail", "t1", 30, lambda: "fresh") == "fresh"
    assert cache.get("trip:detail", "t1") == "fresh"


def test_namespace_invalidation_and_clear_during_load_skip_store():
    cache = CacheBackend()

    def _drop_namespace():
        cache.invalidate("trip:list")
        return ["stale"]

    cache.remember("trip:list", "all", 30, _drop_namespace)
    assert cache.get("trip:list", "all") is None

    def _clear_all():
        cache.clear()
        return ["stale"]

    cache.remember("trip:list", "all", 30, _clear_all)
    assert cache.get("trip:list", "all") is None


def test_invalidating_other_key_does_not_block_store():
    cache = CacheBackend()

    def _loader():
        cache.invalidate("trip:detail", "t2")
        return "kept"

    cache.remember("trip:detail", "t1", 30, _loader)
    assert cache.get("trip:detail", "t1") == "kept"


def test_build_cache_key_is_deterministic():
    assert build_cache_key("all") == "all"
    assert build_cache_key("a", b=2, a=1) == "a::a=1|b=2"
