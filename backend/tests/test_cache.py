"""
Tests for utils/cache.py
========================
TTL expiry, administration and single-flight fetching.
"""

import asyncio
import gc
import logging

import pytest

from utils.cache import make_key


class TestSourceCache:
    """Tests for get/set/expiry"""

    def test_round_trip(self, make_cache):
        cache = make_cache(ttl=60)
        cache.set("games:KC:2024", ["game"])
        assert cache.get("games:KC:2024") == ["game"]

    def test_miss_returns_none(self, make_cache):
        assert make_cache().get("missing") is None

    def test_entry_expires_at_ttl(self, make_cache, clock):
        cache = make_cache(ttl=60)
        cache.set("k", "v")
        clock.advance(59.9)
        assert cache.get("k") == "v"
        clock.advance(0.1)
        assert cache.get("k") is None

    def test_per_entry_ttl_override(self, make_cache, clock):
        cache = make_cache(ttl=60)
        cache.set("short", 1, ttl=5)
        clock.advance(10)
        assert cache.get("short") is None

    def test_set_overwrites(self, make_cache, clock):
        cache = make_cache(ttl=60)
        cache.set("k", 1)
        clock.advance(50)
        cache.set("k", 2)
        clock.advance(50)
        assert cache.get("k") == 2

    def test_cleanup_removes_only_stale(self, make_cache, clock):
        cache = make_cache(ttl=60)
        cache.set("old", 1)
        clock.advance(61)
        cache.set("new", 2)
        assert cache.cleanup() == 1
        assert len(cache) == 1
        assert cache.get("new") == 2

    def test_clear_and_remove(self, make_cache):
        cache = make_cache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.remove("a")
        assert cache.get("a") is None
        cache.clear()
        assert len(cache) == 0

    def test_stats(self, make_cache, clock):
        cache = make_cache(name="odds", ttl=21600)
        assert cache.stats()["oldest_entry"] is None
        cache.set("a", 1)
        clock.advance(10)
        cache.set("b", 2)
        stats = cache.stats()
        assert stats["name"] == "odds"
        assert stats["entries"] == 2
        assert stats["ttl_seconds"] == 21600
        assert stats["oldest_entry"] < stats["newest_entry"]

    def test_make_key(self):
        assert make_key("games", "KC", 2024) == "games:KC:2024"


class TestGetOrFetch:
    """Tests for single-flight fetching"""

    def test_fetches_once_then_hits(self, make_cache):
        cache = make_cache()
        calls = []

        async def fetch():
            calls.append(1)
            return "value"

        async def run():
            first = await cache.get_or_fetch("k", fetch)
            second = await cache.get_or_fetch("k", fetch)
            return first, second

        assert asyncio.run(run()) == ("value", "value")
        assert len(calls) == 1

    def test_concurrent_callers_share_one_fetch(self, make_cache):
        cache = make_cache()
        calls = []

        async def fetch():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "shared"

        async def run():
            return await asyncio.gather(*(cache.get_or_fetch("k", fetch) for _ in range(5)))

        assert asyncio.run(run()) == ["shared"] * 5
        assert len(calls) == 1

    def test_failures_are_not_cached(self, make_cache):
        cache = make_cache()
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("boom")
            return "ok"

        async def run():
            with pytest.raises(RuntimeError):
                await cache.get_or_fetch("k", flaky)
            return await cache.get_or_fetch("k", flaky)

        assert asyncio.run(run()) == "ok"
        assert len(attempts) == 2

    def test_cancelled_caller_does_not_cancel_fetch(self, make_cache):
        cache = make_cache()
        release = None

        async def fetch():
            await release.wait()
            return "populated"

        async def run():
            nonlocal release
            release = asyncio.Event()
            caller = asyncio.ensure_future(cache.get_or_fetch("k", fetch))
            await asyncio.sleep(0)
            caller.cancel()
            release.set()
            # The shielded fetch still completes and fills the cache
            for _ in range(10):
                await asyncio.sleep(0)
            return cache.get("k")

        assert asyncio.run(run()) == "populated"

    def test_abandoned_failure_is_retrieved(self, make_cache, caplog):
        caplog.set_level(logging.DEBUG, logger="utils.cache")
        cache = make_cache()
        release = None
        unhandled = []

        async def fetch():
            await release.wait()
            raise RuntimeError("boom")

        async def run():
            nonlocal release
            release = asyncio.Event()
            asyncio.get_running_loop().set_exception_handler(lambda loop, context: unhandled.append(context))
            caller = asyncio.ensure_future(cache.get_or_fetch("k", fetch))
            await asyncio.sleep(0)
            caller.cancel()
            release.set()
            for _ in range(10):
                await asyncio.sleep(0)
            gc.collect()

        asyncio.run(run())
        assert "fetch failed: boom" in caplog.text
        assert not any("never retrieved" in context.get("message", "") for context in unhandled)
        assert len(cache) == 0

    def test_expired_entry_is_refetched(self, make_cache, clock):
        cache = make_cache(ttl=60)
        values = iter(["first", "second"])

        async def fetch():
            return next(values)

        async def run():
            first = await cache.get_or_fetch("k", fetch)
            clock.advance(61)
            second = await cache.get_or_fetch("k", fetch)
            return first, second

        assert asyncio.run(run()) == ("first", "second")
