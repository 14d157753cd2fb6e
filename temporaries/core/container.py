"""Dependency injection container for temporaries."""

from contextlib import asynccontextmanager
from typing import Optional

from dependency_injector import containers, providers

from temporaries.constants import OPTIONS_TABLE, SITEMETA_TABLE
from temporaries.core.config import Settings
from temporaries.core.database import Database
from temporaries.core.logging import get_logger
from temporaries.services.backends import OptionBackend, create_backend
from temporaries.services.hooks import StoreHooks, SweepHooks
from temporaries.services.temporary import LOCAL_SCOPE, NETWORK_SCOPE, TemporaryStore
from temporaries.services.sweeper import TemporarySweeper

logger = get_logger(__name__)


def create_network_backend(settings: Settings, database: Optional[Database],
                           local_backend: OptionBackend) -> OptionBackend:
    """Network temporaries share the options table unless running multisite."""
    if not settings.multisite:
        return local_backend
    return create_backend(settings, database, table=SITEMETA_TABLE)


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Database (only started for the database backend)
    database = providers.Singleton(
        Database,
        settings=settings
    )

    # Options backends
    local_backend = providers.Singleton(
        create_backend,
        settings=settings,
        database=database,
        table=OPTIONS_TABLE
    )

    network_backend = providers.Singleton(
        create_network_backend,
        settings=settings,
        database=database,
        local_backend=local_backend
    )

    # Hook registries
    local_hooks = providers.Singleton(StoreHooks)
    network_hooks = providers.Singleton(StoreHooks)
    sweep_hooks = providers.Singleton(SweepHooks)

    # Stores
    local_store = providers.Singleton(
        TemporaryStore,
        backend=local_backend,
        spec=LOCAL_SCOPE,
        hooks=local_hooks
    )

    network_store = providers.Singleton(
        TemporaryStore,
        backend=network_backend,
        spec=NETWORK_SCOPE,
        hooks=network_hooks
    )

    sweeper = providers.Singleton(
        TemporarySweeper,
        stores=providers.List(local_store, network_store),
        grace_seconds=settings.provided.sweep_grace_seconds,
        hooks=sweep_hooks
    )


@asynccontextmanager
async def lifespan(container: Container):
    """Start services for the duration of a command."""
    settings = container.settings()

    if settings.storage_backend == "database":
        await container.database().startup()

    try:
        yield container
    finally:
        local_backend = container.local_backend()
        network_backend = container.network_backend()
        await local_backend.close()
        if network_backend is not local_backend:
            await network_backend.close()
        await container.database().shutdown()
        logger.debug("Services shutdown complete")
