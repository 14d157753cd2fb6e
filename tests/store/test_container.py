import pytest

from temporaries.core.container import Container, lifespan
from temporaries.services import DatabaseOptionBackend, MemoryOptionBackend, Scope


def make_container(settings):
    container = Container()
    container.settings.override(settings)
    return container


@pytest.mark.asyncio
async def test_single_site_shares_the_options_backend(settings):
    container = make_container(settings)

    async with lifespan(container):
        local = container.local_store()
        network = container.network_store()

        assert isinstance(local.backend, DatabaseOptionBackend)
        assert network.backend is local.backend
        assert local.scope is Scope.LOCAL
        assert network.scope is Scope.NETWORK

        await local.set("key", "local")
        await network.set("key", "network")
        assert await local.get("key") == "local"
        assert await network.get("key") == "network"


@pytest.mark.asyncio
async def test_multisite_uses_sitemeta(settings):
    container = make_container(settings.model_copy(update={"multisite": True}))

    async with lifespan(container):
        local_backend = container.local_backend()
        network_backend = container.network_backend()

        assert network_backend is not local_backend
        assert local_backend.table == "options"
        assert network_backend.table == "sitemeta"


@pytest.mark.asyncio
async def test_sweeper_wiring(settings):
    container = make_container(settings.model_copy(update={"sweep_grace_seconds": 5}))

    async with lifespan(container):
        sweeper = container.sweeper()

        assert sweeper.grace_seconds == 5
        assert sweeper.stores == [container.local_store(), container.network_store()]
        assert sweeper.hooks is container.sweep_hooks()


@pytest.mark.asyncio
async def test_memory_backend_needs_no_database(settings):
    container = make_container(settings.model_copy(update={"storage_backend": "memory"}))

    async with lifespan(container):
        assert isinstance(container.local_backend(), MemoryOptionBackend)
        assert container.database().engine is None
