"""Sweeper that reclaims expired temporaries nobody has read.

Follows the lazy-expiration path of TemporaryStore.get: the sweeper only
finds candidate keys and reads them, so deleting rows has a single
implementation. Invoked on demand; see services/scheduler.py for running
it periodically.
"""
from typing import Any, Callable, Dict, Iterable, Optional

from temporaries.constants import MINUTE_IN_SECONDS
from temporaries.core.logging import get_logger
from .hooks import SweepHooks
from .temporary import TemporaryStore, current_time

logger = get_logger(__name__)


class TemporarySweeper:
    """Bulk reclaim of expired temporaries across scopes.

    Entries expired for less than ``grace_seconds`` are left to be
    expired by ordinary reads.
    """

    def __init__(
        self,
        stores: Iterable[TemporaryStore],
        grace_seconds: int = MINUTE_IN_SECONDS,
        hooks: Optional[SweepHooks] = None,
        clock: Callable[[], int] = current_time,
    ):
        self.stores = list(stores)
        self.grace_seconds = grace_seconds
        self.hooks = hooks or SweepHooks()
        self.clock = clock

    async def sweep(self) -> Dict[str, Any]:
        """Run one sweep over every scope.

        Returns the number of keys processed per scope. Never raises for a
        single key's failure.
        """
        results: Dict[str, Any] = {"skipped": False}
        for store in self.stores:
            results[store.scope.value] = 0

        if self.hooks.pre_clean():
            results["skipped"] = True
            return results

        cutoff = self.clock() - self.grace_seconds

        for store in self.stores:
            try:
                keys = await store.expired_keys(cutoff)
            except Exception as e:
                logger.error("Failed to scan expired temporaries",
                             scope=store.scope.value, error=str(e))
                continue

            for key in keys:
                try:
                    await store.get(key)
                    results[store.scope.value] += 1
                except Exception as e:
                    logger.error("Failed to reclaim temporary",
                                 temporary=key, scope=store.scope.value, error=str(e))

        if any(results[store.scope.value] for store in self.stores):
            logger.info("Sweep completed", cutoff=cutoff, **results)
        else:
            logger.debug("Sweep found nothing to reclaim", cutoff=cutoff)

        self.hooks.after_clean(results)
        return results
