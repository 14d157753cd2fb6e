"""Interception points for temporary store and sweep operations.

Each store owns a ``StoreHooks`` registry and the sweeper owns a
``SweepHooks`` registry. Hosts register plain callables at start-up;
the registries are read-mostly afterwards.

Filters receive the current value and return the replacement; several
filters on the same slot run in registration order. Actions are
notifications and their return value is ignored.

Usage:
    hooks = StoreHooks()
    hooks.add_pre_set("greeting", lambda value, expiration, key: value.upper())
    hooks.add_setted(lambda key, value, expiration: print("set", key))
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from temporaries.core.logging import get_logger

logger = get_logger(__name__)

# Filter signatures
PreGetFilter = Callable[[str], Optional[Any]]                  # (key) -> substitute | None
GetFilter = Callable[[Any, str], Any]                          # (value, key) -> value
PreSetFilter = Callable[[Any, int, str], Any]                  # (value, expiration, key) -> value
ExpirationFilter = Callable[[int, Any, str], int]              # (expiration, value, key) -> expiration
PreUpdateFilter = Callable[[Any, str], Any]                    # (value, key) -> value

# Action signatures
KeyAction = Callable[[str], None]                              # (key)
KeyWriteAction = Callable[[Any, int, str], None]               # (value, expiration, key)
WriteAction = Callable[[str, Any, int], None]                  # (key, value, expiration)


class StoreHooks:
    """Per-key and global interception slots for one store scope."""

    def __init__(self):
        self._pre_get: Dict[str, List[PreGetFilter]] = defaultdict(list)
        self._get: Dict[str, List[GetFilter]] = defaultdict(list)
        self._pre_set: Dict[str, List[PreSetFilter]] = defaultdict(list)
        self._expiration: Dict[str, List[ExpirationFilter]] = defaultdict(list)
        self._pre_update: Dict[str, List[PreUpdateFilter]] = defaultdict(list)
        self._delete: Dict[str, List[KeyAction]] = defaultdict(list)
        self._set: Dict[str, List[KeyWriteAction]] = defaultdict(list)
        self._update: Dict[str, List[KeyWriteAction]] = defaultdict(list)
        self._setted: List[WriteAction] = []
        self._updated: List[WriteAction] = []
        self._deleted: List[KeyAction] = []

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_pre_get(self, key: str, callback: PreGetFilter) -> None:
        """Short-circuit retrieval of key by returning anything other than None."""
        self._pre_get[key].append(callback)

    def add_get(self, key: str, callback: GetFilter) -> None:
        """Transform the value of key before get returns it."""
        self._get[key].append(callback)

    def add_pre_set(self, key: str, callback: PreSetFilter) -> None:
        self._pre_set[key].append(callback)

    def add_expiration(self, key: str, callback: ExpirationFilter) -> None:
        self._expiration[key].append(callback)

    def add_pre_update(self, key: str, callback: PreUpdateFilter) -> None:
        self._pre_update[key].append(callback)

    def add_delete(self, key: str, callback: KeyAction) -> None:
        """Called before key is deleted, whether or not deletion succeeds."""
        self._delete[key].append(callback)

    def add_set(self, key: str, callback: KeyWriteAction) -> None:
        self._set[key].append(callback)

    def add_update(self, key: str, callback: KeyWriteAction) -> None:
        self._update[key].append(callback)

    def add_setted(self, callback: WriteAction) -> None:
        self._setted.append(callback)

    def add_updated(self, callback: WriteAction) -> None:
        self._updated.append(callback)

    def add_deleted(self, callback: KeyAction) -> None:
        self._deleted.append(callback)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def pre_get(self, key: str) -> Optional[Any]:
        for callback in self._pre_get.get(key, ()):
            substitute = callback(key)
            if substitute is not None:
                return substitute
        return None

    def get(self, key: str, value: Any) -> Any:
        for callback in self._get.get(key, ()):
            value = callback(value, key)
        return value

    def pre_set(self, key: str, value: Any, expiration: int) -> Any:
        for callback in self._pre_set.get(key, ()):
            value = callback(value, expiration, key)
        return value

    def expiration(self, key: str, expiration: int, value: Any) -> int:
        for callback in self._expiration.get(key, ()):
            expiration = int(callback(expiration, value, key))
        return expiration

    def pre_update(self, key: str, value: Any) -> Any:
        for callback in self._pre_update.get(key, ()):
            value = callback(value, key)
        return value

    def delete(self, key: str) -> None:
        for callback in self._delete.get(key, ()):
            callback(key)

    def deleted(self, key: str) -> None:
        for callback in self._deleted:
            callback(key)

    def set(self, key: str, value: Any, expiration: int) -> None:
        for callback in self._set.get(key, ()):
            callback(value, expiration, key)
        for callback in self._setted:
            callback(key, value, expiration)

    def update(self, key: str, value: Any, expiration: int) -> None:
        for callback in self._update.get(key, ()):
            callback(value, expiration, key)
        for callback in self._updated:
            callback(key, value, expiration)


class SweepHooks:
    """Global interception slots for the sweep."""

    def __init__(self):
        self._pre_clean: List[Callable[[], Optional[Any]]] = []
        self._after_clean: List[Callable[[Dict[str, Any]], None]] = []

    def add_pre_clean(self, callback: Callable[[], Optional[Any]]) -> None:
        """Skip the sweep when callback returns a truthy value."""
        self._pre_clean.append(callback)

    def add_after_clean(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        self._after_clean.append(callback)

    def pre_clean(self) -> bool:
        for callback in self._pre_clean:
            if callback():
                logger.debug("Sweep short-circuited by hook")
                return True
        return False

    def after_clean(self, results: Dict[str, Any]) -> None:
        for callback in self._after_clean:
            callback(results)
