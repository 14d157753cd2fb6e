"""Network (site-wide) temporaries."""
import pytest

from temporaries.services import (
    LOCAL_SCOPE,
    NETWORK_SCOPE,
    DatabaseOptionBackend,
    TemporaryStore,
)


@pytest.mark.asyncio
async def test_the_basics(network_store):
    assert await network_store.get("doesnotexist") is None
    assert await network_store.set("key1", "value1") is True
    assert await network_store.get("key1") == "value1"
    assert await network_store.set("key1", "value2") is True
    assert await network_store.get("key1") == "value2"
    assert await network_store.delete("key1") is True
    assert await network_store.get("key1") is None
    assert await network_store.delete("key1") is False


@pytest.mark.asyncio
async def test_rows_use_network_prefixes(network_store, backend, clock):
    await network_store.set("key", "value", 60)

    assert await backend.read("_site_temporary_key") == "value"
    assert await backend.read("_site_temporary_timeout_key") == clock() + 60
    assert await backend.read("_temporary_key") is None


@pytest.mark.asyncio
async def test_scopes_are_isolated(store, network_store):
    await store.set("shared", "local")
    await network_store.set("shared", "network")

    assert await store.get("shared") == "local"
    assert await network_store.get("shared") == "network"

    assert await store.keys() == ["shared"]
    assert await network_store.keys() == ["shared"]

    await network_store.delete("shared")
    assert await store.get("shared") == "local"


@pytest.mark.asyncio
async def test_network_add_timeout(network_store, backend, clock):
    assert await network_store.set("key", "value") is True
    assert await backend.read("_site_temporary_timeout_key") is None

    assert await network_store.set("key", "value2", 30) is True
    assert await backend.read("_site_temporary_timeout_key") == clock() + 30
    assert await network_store.get("key") == "value2"

    clock.advance(30)
    assert await network_store.get("key") is None
    assert await backend.read("_site_temporary_key") is None


@pytest.mark.asyncio
async def test_allow_listed_keys_never_expire(network_store, backend, clock):
    await network_store.set("update_core", {"version": "6.0"})
    await backend.put_if_absent("_site_temporary_timeout_update_core", clock() - 10, preload=False)

    assert await network_store.get("update_core") == {"version": "6.0"}
    assert await backend.read("_site_temporary_timeout_update_core") == clock() - 10


@pytest.mark.asyncio
async def test_other_keys_honour_timeouts(network_store, clock):
    await network_store.set("update_extras", "x", 10)
    clock.advance(11)

    assert await network_store.get("update_extras") is None


@pytest.mark.asyncio
async def test_multisite_uses_sitemeta(database, clock):
    options = DatabaseOptionBackend(database, table="options")
    sitemeta = DatabaseOptionBackend(database, table="sitemeta")

    local = TemporaryStore(options, LOCAL_SCOPE, clock=clock)
    network = TemporaryStore(sitemeta, NETWORK_SCOPE, clock=clock)

    await local.set("key", "here")
    await network.set("key", "everywhere", 60)

    assert await options.read("_site_temporary_key") is None
    assert await sitemeta.read("_site_temporary_key") == "everywhere"
    assert await sitemeta.read("_site_temporary_timeout_key") == clock() + 60
    assert await options.read("_temporary_key") == "here"

    # Expiring rows are not preloaded
    assert await sitemeta.load_preloaded() == {}
