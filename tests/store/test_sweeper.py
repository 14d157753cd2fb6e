import pytest

from temporaries.services import SweepHooks, TemporarySweeper


@pytest.fixture
def sweeper(store, network_store, clock):
    return TemporarySweeper([store, network_store], grace_seconds=60, clock=clock)


@pytest.mark.asyncio
async def test_sweep_respects_grace_window(sweeper, store, backend, clock):
    await store.set("recent", "a", 10)
    await store.set("stale", "b", 10)
    await store.set("forever", "c")

    # "stale" expired 90s ago, "recent" 30s ago
    await backend.replace("_temporary_timeout_stale", clock() - 90)
    await backend.replace("_temporary_timeout_recent", clock() - 30)

    results = await sweeper.sweep()

    assert results == {"skipped": False, "local": 1, "network": 0}
    assert await backend.read("_temporary_stale") is None
    assert await backend.read("_temporary_timeout_stale") is None
    # Inside the grace window: left for an ordinary read
    assert await backend.read("_temporary_recent") == "a"
    assert await backend.read("_temporary_forever") == "c"


@pytest.mark.asyncio
async def test_sweep_covers_both_scopes(sweeper, store, network_store, backend, clock):
    await store.set("local", 1, 5)
    await network_store.set("network", 2, 5)
    clock.advance(3600)

    results = await sweeper.sweep()

    assert results["local"] == 1
    assert results["network"] == 1
    assert await backend.read("_temporary_local") is None
    assert await backend.read("_site_temporary_network") is None
    assert await backend.read("_site_temporary_timeout_network") is None


@pytest.mark.asyncio
async def test_unexpired_entries_survive(sweeper, store, clock):
    await store.set("key", "value", 3600)
    clock.advance(60)

    assert (await sweeper.sweep())["local"] == 0
    assert await store.get("key") == "value"


@pytest.mark.asyncio
async def test_expired_orphan_timeout_is_reclaimed(sweeper, backend, clock):
    await backend.put_if_absent("_temporary_timeout_orphan", clock() - 600, preload=False)

    await sweeper.sweep()

    assert await backend.read("_temporary_timeout_orphan") is None


@pytest.mark.asyncio
async def test_pre_clean_hook_skips_sweep(store, network_store, backend, clock):
    hooks = SweepHooks()
    hooks.add_pre_clean(lambda: True)
    after = []
    hooks.add_after_clean(after.append)
    sweeper = TemporarySweeper([store, network_store], hooks=hooks, clock=clock)

    await store.set("key", "value", 5)
    clock.advance(3600)

    results = await sweeper.sweep()

    assert results == {"skipped": True, "local": 0, "network": 0}
    assert await backend.read("_temporary_key") == "value"
    assert after == []


@pytest.mark.asyncio
async def test_after_clean_hook_receives_results(store, network_store, clock):
    hooks = SweepHooks()
    received = []
    hooks.add_after_clean(received.append)
    sweeper = TemporarySweeper([store, network_store], hooks=hooks, clock=clock)

    await store.set("key", "value", 5)
    clock.advance(3600)
    results = await sweeper.sweep()

    assert received == [results]
    assert results["local"] == 1


@pytest.mark.asyncio
async def test_failing_key_does_not_stop_the_sweep(sweeper, store, clock):
    await store.set("bad", 1, 5)
    await store.set("good", 2, 5)
    clock.advance(3600)

    def explode(key):
        raise RuntimeError("boom")

    store.hooks.add_pre_get("bad", explode)

    results = await sweeper.sweep()

    assert results["local"] == 1
    assert await store.timeout("good") is None
    assert await store.timeout("bad") is not None


@pytest.mark.asyncio
async def test_failing_scan_does_not_stop_the_sweep(sweeper, store, network_store, clock, monkeypatch):
    await network_store.set("key", "value", 5)
    clock.advance(3600)

    async def broken_scan(cutoff):
        raise RuntimeError("scan failed")

    monkeypatch.setattr(store, "expired_keys", broken_scan)

    results = await sweeper.sweep()

    assert results["local"] == 0
    assert results["network"] == 1
