"""Tests for the per-document external resolution cache."""

import asyncio

from beanlens.services.analysis_cache import AnalysisCache, CacheState

from fakes import loc


class TestScheduling:

    def test_lookup_result_is_stored_and_announced(self):
        async def run():
            cache = AnalysisCache("src/Foo.java")
            events = []
            cache.subscribe(lambda doc, name, location: events.append((doc, name, location)))

            async def lookup():
                return loc("src/AppConfig.java", 10)

            entry = cache.schedule("Foo", lookup)
            assert entry.is_pending
            await cache.wait_pending()
            return cache, events

        cache, events = asyncio.run(run())

        entry = cache.get("Foo")
        assert entry.state == CacheState.RESOLVED
        assert entry.location.file_id == "src/AppConfig.java"
        assert events == [("src/Foo.java", "Foo", entry.location)]

    def test_second_schedule_reuses_the_entry(self):
        calls = []

        async def lookup():
            calls.append(1)
            return None

        async def run():
            cache = AnalysisCache("src/Foo.java")
            first = cache.schedule("Foo", lookup)
            second = cache.schedule("Foo", lookup)
            await cache.wait_pending()
            return first, second, cache

        first, second, cache = asyncio.run(run())

        assert first is second
        assert len(calls) == 1
        assert "Foo" in cache

    def test_failed_lookup_resolves_to_nothing(self):
        async def lookup():
            raise RuntimeError("index offline")

        async def run():
            cache = AnalysisCache("src/Foo.java")
            events = []
            cache.subscribe(lambda doc, name, location: events.append(location))
            cache.schedule("Foo", lookup)
            await cache.wait_pending()
            return cache, events

        cache, events = asyncio.run(run())

        assert cache.get("Foo").state == CacheState.RESOLVED
        assert cache.get("Foo").location is None
        assert events == [None]

    def test_failing_listener_does_not_block_others(self):
        async def lookup():
            return None

        def broken(doc, name, location):
            raise ValueError("listener bug")

        async def run():
            cache = AnalysisCache("src/Foo.java")
            events = []
            cache.subscribe(broken)
            cache.subscribe(lambda doc, name, location: events.append(name))
            cache.schedule("Foo", lookup)
            await cache.wait_pending()
            return events

        assert asyncio.run(run()) == ["Foo"]

    def test_unsubscribed_listener_is_not_called(self):
        async def lookup():
            return None

        async def run():
            cache = AnalysisCache("src/Foo.java")
            events = []
            unsubscribe = cache.subscribe(lambda doc, name, location: events.append(name))
            unsubscribe()
            cache.schedule("Foo", lookup)
            await cache.wait_pending()
            return events

        assert asyncio.run(run()) == []


class TestInvalidation:

    def test_invalidate_cancels_running_lookups(self):
        async def run():
            cache = AnalysisCache("src/Foo.java")
            events = []
            cache.subscribe(lambda doc, name, location: events.append(name))
            never = asyncio.Event()

            async def lookup():
                await never.wait()
                return loc("src/AppConfig.java", 10)

            entry = cache.schedule("Foo", lookup)
            await asyncio.sleep(0)
            cache.invalidate()
            await asyncio.gather(entry.task, return_exceptions=True)
            return cache, entry, events

        cache, entry, events = asyncio.run(run())

        assert entry.task.cancelled()
        assert len(cache) == 0
        assert cache.generation == 1
        assert events == []

    def test_entries_after_invalidation_start_fresh(self):
        async def run():
            cache = AnalysisCache("src/Foo.java")

            async def first_lookup():
                return loc("src/Old.java", 1)

            async def second_lookup():
                return loc("src/New.java", 2)

            cache.schedule("Foo", first_lookup)
            await cache.wait_pending()
            cache.invalidate()
            cache.schedule("Foo", second_lookup)
            await cache.wait_pending()
            return cache

        cache = asyncio.run(run())

        assert cache.get("Foo").location.file_id == "src/New.java"
