import asyncio
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from sesame_sso.oauth.state import InMemoryTTLStore, StateStore


def test_set_get_has_delete(store: InMemoryTTLStore) -> None:
    async def run() -> None:
        await store.set("abc", {"created_at": 1})
        assert await store.has("abc")
        assert await store.get("abc") == {"created_at": 1}

        await store.delete("abc")
        assert not await store.has("abc")
        assert await store.get("abc") is None

        # Deleting a missing key is a no-op
        await store.delete("abc")

    asyncio.run(run())


def test_set_overwrites_existing_entry(store: InMemoryTTLStore) -> None:
    async def run() -> None:
        await store.set("abc", "first")
        await store.set("abc", "second")
        assert await store.get("abc") == "second"
        assert len(store) == 1

    asyncio.run(run())


def test_already_expired_entry_is_absent_before_any_sweep(store: InMemoryTTLStore) -> None:
    async def run() -> None:
        await store.set("old", {"created_at": 1}, expires_at=time.time() - 0.001)
        assert len(store) == 1
        assert not await store.has("old")
        assert await store.get("old") is None
        # Lazy expiry purged the entry
        assert len(store) == 0

    asyncio.run(run())


def test_pop_consumes_entry_once(store: InMemoryTTLStore) -> None:
    async def run() -> None:
        await store.set("state", {"created_at": 1})
        assert await store.pop("state") == {"created_at": 1}
        assert await store.pop("state") is None
        assert not await store.has("state")

    asyncio.run(run())


def test_pop_ignores_expired_entry(store: InMemoryTTLStore) -> None:
    async def run() -> None:
        await store.set("state", "value", expires_at=time.time() - 1)
        assert await store.pop("state") is None
        assert len(store) == 0

    asyncio.run(run())


def test_cleanup_removes_only_expired_entries(store: InMemoryTTLStore) -> None:
    async def run() -> None:
        await store.set("expired-1", 1, expires_at=time.time() - 1)
        await store.set("expired-2", 2, expires_at=time.time() - 1)
        await store.set("live", 3)

    asyncio.run(run())

    assert store.cleanup() == 2
    assert len(store) == 1


def test_overflow_sweeps_expired_entries_first() -> None:
    store = InMemoryTTLStore(max_entries=3)
    try:

        async def run() -> None:
            await store.set("expired-1", 1, expires_at=time.time() - 1)
            await store.set("expired-2", 2, expires_at=time.time() - 1)
            await store.set("live", 3)
            await store.set("new", 4)

            assert len(store) == 2
            assert await store.has("live")
            assert await store.has("new")

        asyncio.run(run())
    finally:
        store.stop()


def test_overflow_without_expired_entries_evicts_oldest() -> None:
    store = InMemoryTTLStore(max_entries=3)
    try:

        async def run() -> None:
            for key in ("a", "b", "c", "d", "e"):
                await store.set(key, key)

            assert len(store) == 3
            assert not await store.has("a")
            assert not await store.has("b")
            for key in ("c", "d", "e"):
                assert await store.has(key)

        asyncio.run(run())
    finally:
        store.stop()


def test_background_sweep_removes_expired_entries() -> None:
    store = InMemoryTTLStore(ttl_seconds=0.05, cleanup_interval_seconds=0.05)
    try:
        asyncio.run(store.set("state", "value"))
        deadline = time.time() + 2.0
        while len(store) and time.time() < deadline:
            time.sleep(0.02)
        assert len(store) == 0
    finally:
        store.stop()


def test_sweep_interval_is_capped_by_ttl() -> None:
    store = InMemoryTTLStore(ttl_seconds=5, cleanup_interval_seconds=60)
    try:
        assert store.cleanup_interval_seconds == 5
    finally:
        store.stop()


def test_stop_halts_background_sweep() -> None:
    store = InMemoryTTLStore(ttl_seconds=0.05, cleanup_interval_seconds=0.05)
    store.stop()
    assert store.stopped

    async def run() -> None:
        await store.set("state", "value")
        await asyncio.sleep(0.3)
        # No background purge happened
        assert len(store) == 1
        # Lazy expiry still applies
        assert not await store.has("state")
        assert len(store) == 0

    asyncio.run(run())


def test_stop_is_idempotent_and_store_keeps_working() -> None:
    store = InMemoryTTLStore()
    store.stop()
    store.stop()

    async def run() -> None:
        await store.set("k", "v")
        assert await store.get("k") == "v"

    asyncio.run(run())


def test_context_manager_stops_sweeper() -> None:
    with InMemoryTTLStore() as store:
        assert not store.stopped
    assert store.stopped


def test_concurrent_pop_has_single_winner(store: InMemoryTTLStore) -> None:
    asyncio.run(store.set("state", {"created_at": 1}))

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: asyncio.run(store.pop("state")), range(16)))

    assert sum(result is not None for result in results) == 1


def test_in_memory_store_satisfies_protocol(store: InMemoryTTLStore) -> None:
    assert isinstance(store, StateStore)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"ttl_seconds": 0},
        {"max_entries": 0},
        {"cleanup_interval_seconds": -1},
    ],
)
def test_invalid_arguments_are_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        InMemoryTTLStore(**kwargs)
