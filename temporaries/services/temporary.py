"""Temporary store: values that live in the options table until they expire.

A temporary ``key`` is kept as up to two independent option rows:

    {prefix}{key}           -> value
    {prefix}timeout_{key}   -> absolute expiry, integer epoch seconds

A value row without a timeout row never expires. Expired pairs are
removed lazily by ``get``; the sweeper forces that same path for entries
nobody reads. The backend has no multi-row transactions, so every write
sequence below is ordered such that an interrupted sequence leaves, at
worst, a timeout row without a value row, which ``get`` reports as absent.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, FrozenSet, List, Optional

from temporaries.constants import (
    LOCAL_PREFIX,
    LOCAL_TIMEOUT_PREFIX,
    NETWORK_NO_TIMEOUT_KEYS,
    NETWORK_PREFIX,
    NETWORK_TIMEOUT_PREFIX,
)
from temporaries.core.logging import get_logger, log_store_operation
from .backends import OptionBackend, as_int
from .hooks import StoreHooks

logger = get_logger(__name__)


class Scope(str, Enum):
    """Namespace a temporary lives in."""
    LOCAL = "local"        # Single site
    NETWORK = "network"    # Whole network of sites


@dataclass(frozen=True)
class ScopeSpec:
    """Storage layout of one scope.

    preload_aware: the backend's preload flag means "has no timeout", so
        preloaded rows can skip the timeout lookup.
    no_timeout: keys whose timeout is never consulted.

    The timeout row of key ``k`` has the same name as the value row of key
    ``timeout_k``, so writing one overwrites the other. A timeout that does
    not hold an integer reads as 0, the same as the sweep's SQL CAST, and
    expires its entry on the next read.
    """
    scope: Scope
    prefix: str
    timeout_prefix: str
    preload_aware: bool
    no_timeout: FrozenSet[str] = field(default_factory=frozenset)


LOCAL_SCOPE = ScopeSpec(
    scope=Scope.LOCAL,
    prefix=LOCAL_PREFIX,
    timeout_prefix=LOCAL_TIMEOUT_PREFIX,
    preload_aware=True,
)

NETWORK_SCOPE = ScopeSpec(
    scope=Scope.NETWORK,
    prefix=NETWORK_PREFIX,
    timeout_prefix=NETWORK_TIMEOUT_PREFIX,
    preload_aware=False,
    no_timeout=NETWORK_NO_TIMEOUT_KEYS,
)


def current_time() -> int:
    return int(time.time())


class TemporaryStore:
    """Set, get, update and delete temporaries in one scope."""

    def __init__(self, backend: OptionBackend, spec: ScopeSpec = LOCAL_SCOPE,
                 hooks: Optional[StoreHooks] = None,
                 clock: Callable[[], int] = current_time):
        self.backend = backend
        self.spec = spec
        self.hooks = hooks or StoreHooks()
        self.clock = clock

    @property
    def scope(self) -> Scope:
        return self.spec.scope

    def option_name(self, key: str) -> str:
        return f"{self.spec.prefix}{key}"

    def timeout_name(self, key: str) -> str:
        return f"{self.spec.timeout_prefix}{key}"

    # =========================================================================
    # CORE OPERATIONS
    # =========================================================================

    async def get(self, key: str) -> Optional[Any]:
        """Get the value of a temporary.

        Returns None if the temporary does not exist or has expired. An
        expired temporary is deleted as a side effect.
        """
        pre = self.hooks.pre_get(key)
        if pre is not None:
            return pre

        option = self.option_name(key)
        timeout_option = self.timeout_name(key)
        row = await self.backend.read_row(option)

        if self.spec.preload_aware:
            # Preloaded rows were created without a timeout
            check_timeout = row is None or not row[1]
        else:
            check_timeout = key not in self.spec.no_timeout

        expired = False
        if check_timeout:
            timeout = await self.backend.read_row(timeout_option)
            if timeout is not None and as_int(timeout[0]) <= self.clock():
                await self.backend.remove(option)
                await self.backend.remove(timeout_option)
                expired = True

        value = None if expired or row is None else row[0]

        log_store_operation(logger, "get", key, self.scope.value,
                            hit=value is not None, expired=expired)
        return self.hooks.get(key, value)

    async def set(self, key: str, value: Any, expiration: int = 0) -> bool:
        """Set the value of a temporary.

        A non-zero expiration (seconds) always starts counting from now,
        also when the temporary already exists. With expiration 0 an
        existing timeout is left as it is.

        Returns True only if the value row was written.
        """
        expiration = int(expiration)
        value = self.hooks.pre_set(key, value, expiration)
        expiration = self.hooks.expiration(key, expiration, value)

        option = self.option_name(key)
        timeout_option = self.timeout_name(key)

        if not await self.backend.exists(option):
            if expiration:
                await self._write_timeout(timeout_option, expiration)
                result = await self.backend.put_if_absent(option, value, preload=False)
            else:
                # Drop a timeout left behind by an interrupted delete
                await self.backend.remove(timeout_option)
                result = await self.backend.put_if_absent(option, value, preload=True)
        else:
            update = True
            if expiration:
                if not await self.backend.exists(timeout_option):
                    if self.spec.preload_aware:
                        # The preload flag is fixed at creation, so re-create
                        # the row rather than update it
                        await self.backend.remove(option)
                        await self.backend.put_if_absent(
                            timeout_option, self.clock() + expiration, preload=False
                        )
                        result = await self.backend.put_if_absent(option, value, preload=False)
                        update = False
                    else:
                        await self._write_timeout(timeout_option, expiration)
                else:
                    await self.backend.replace(timeout_option, self.clock() + expiration)
            if update:
                result = await self.backend.replace(option, value)

        log_store_operation(logger, "set", key, self.scope.value,
                            result=result, expiration=expiration)
        if result:
            self.hooks.set(key, value, expiration)

        return result

    async def update(self, key: str, value: Any, expiration: int = 0) -> bool:
        """Update the value of a temporary without touching its timeout.

        If the temporary does not exist it is set with the given
        expiration; otherwise expiration is ignored.
        """
        value = self.hooks.pre_update(key, value)

        if await self.get(key) is None:
            result = await self.set(key, value, expiration)
        else:
            result = await self.backend.replace(self.option_name(key), value)

        log_store_operation(logger, "update", key, self.scope.value, result=result)
        if result:
            self.hooks.update(key, value, expiration)

        return result

    async def delete(self, key: str) -> bool:
        """Delete a temporary. Returns False if it did not exist."""
        self.hooks.delete(key)

        # Value first: a crash in between leaves only the timeout row
        result = await self.backend.remove(self.option_name(key))
        if result:
            await self.backend.remove(self.timeout_name(key))

        log_store_operation(logger, "delete", key, self.scope.value, result=result)
        if result:
            self.hooks.deleted(key)

        return result

    # =========================================================================
    # BULK / INSPECTION
    # =========================================================================

    async def keys(self) -> List[str]:
        """Names of all temporaries in this scope, expired ones included."""
        return await self.backend.scan_names(self.spec.prefix, exclude_prefix=self.spec.timeout_prefix)

    async def timeout(self, key: str) -> Optional[int]:
        """Raw expiry instant of a temporary, None if it has no timeout."""
        row = await self.backend.read_row(self.timeout_name(key))
        return as_int(row[0]) if row is not None else None

    async def expired_keys(self, cutoff: int) -> List[str]:
        """Names of temporaries whose timeout is older than cutoff."""
        return await self.backend.scan_names_older_than(self.spec.timeout_prefix, cutoff)

    async def delete_all(self) -> int:
        """Delete every temporary in this scope. Returns the number deleted."""
        count = 0
        for key in await self.keys():
            try:
                if await self.delete(key):
                    count += 1
            except Exception as e:
                logger.error("Failed to delete temporary", temporary=key,
                             scope=self.scope.value, error=str(e))
        return count

    async def _write_timeout(self, timeout_option: str, expiration: int) -> None:
        """Create or overwrite a timeout row."""
        expires_at = self.clock() + expiration
        if not await self.backend.put_if_absent(timeout_option, expires_at, preload=False):
            await self.backend.replace(timeout_option, expires_at)
