"""Temporaries services.

- Scoped stores with lazy expiration on read
- Sweeper that forces expiration of entries nobody reads
- Pluggable options backends (database, Redis, memory)
- Typed hook registries for host applications
"""

from .backends import (
    OptionBackend,
    DatabaseOptionBackend,
    RedisOptionBackend,
    MemoryOptionBackend,
    create_backend,
)
from .hooks import StoreHooks, SweepHooks
from .temporary import (
    Scope,
    ScopeSpec,
    LOCAL_SCOPE,
    NETWORK_SCOPE,
    TemporaryStore,
)
from .sweeper import TemporarySweeper

__all__ = [
    # Backends
    "OptionBackend",
    "DatabaseOptionBackend",
    "RedisOptionBackend",
    "MemoryOptionBackend",
    "create_backend",
    # Hooks
    "StoreHooks",
    "SweepHooks",
    # Stores
    "Scope",
    "ScopeSpec",
    "LOCAL_SCOPE",
    "NETWORK_SCOPE",
    "TemporaryStore",
    # Sweeper
    "TemporarySweeper",
]
