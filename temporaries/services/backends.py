"""
Options substrate backends for temporaries.

Supports three backends for different deployment scenarios:
- Database: Default, SQLModel over SQLite (or any SQLAlchemy async URL)
- Redis: One hash per table plus a set of preloaded names
- Memory: In-process dictionary for development and tests

Every backend stores values as JSON text and exposes the same row-level
operations. No backend offers multi-row transactions: a temporary's value
and timeout rows are written independently.

Usage:
    backend = create_backend(settings, database, table=OPTIONS_TABLE)
    await backend.put_if_absent("_temporary_foo", "bar", preload=True)
    value = await backend.read("_temporary_foo")
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as redis

from temporaries.constants import OPTIONS_TABLE, SITEMETA_TABLE
from temporaries.core.config import Settings
from temporaries.core.database import Database
from temporaries.core.logging import get_logger
from temporaries.models import Option, SiteMeta

logger = get_logger(__name__)


def serialize(value: Any) -> str:
    """Serialize a value for storage."""
    return json.dumps(value, default=str, sort_keys=True)


def deserialize(raw: Optional[str]) -> Any:
    """Deserialize a stored value. None stays None."""
    if raw is None:
        return None
    return json.loads(raw)


def strip_prefix(names: List[str], prefix: str) -> List[str]:
    """Turn full option names into name suffixes."""
    return [name[len(prefix):] for name in names if name.startswith(prefix)]


class OptionBackend(ABC):
    """Abstract base class for option storage backends."""

    table: str = OPTIONS_TABLE

    @abstractmethod
    async def put_if_absent(self, name: str, value: Any, preload: bool = True) -> bool:
        """Create an option. Returns False if it already exists."""
        pass

    @abstractmethod
    async def replace(self, name: str, value: Any) -> bool:
        """Replace an existing option's value.

        Returns False if the option does not exist or already holds the value.
        """
        pass

    @abstractmethod
    async def read(self, name: str) -> Optional[Any]:
        """Read an option value, None if absent."""
        pass

    @abstractmethod
    async def read_row(self, name: str) -> Optional[Tuple[Any, bool]]:
        """Read an option as (value, preload), None if absent.

        A stored null comes back as (None, preload), which tells it apart
        from a missing row.
        """
        pass

    async def exists(self, name: str) -> bool:
        return await self.read_row(name) is not None

    @abstractmethod
    async def remove(self, name: str) -> bool:
        """Remove an option. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def scan_names(self, prefix: str, exclude_prefix: Optional[str] = None) -> List[str]:
        """Sorted name suffixes of options starting with prefix."""
        pass

    @abstractmethod
    async def scan_names_older_than(self, prefix: str, cutoff: int) -> List[str]:
        """Name suffixes of options starting with prefix holding an integer below cutoff."""
        pass

    @abstractmethod
    async def load_preloaded(self) -> Dict[str, Any]:
        """All options created with preload=True, as name -> value."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None


class DatabaseOptionBackend(OptionBackend):
    """
    SQLModel-backed options table (default).

    Uses the shared Database service; one instance per table.
    Best for: single-process deployments, local development.
    """

    def __init__(self, database: Database, table: str = OPTIONS_TABLE):
        self._database = database
        self.table = table
        self._model = SiteMeta if table == SITEMETA_TABLE else Option

    async def put_if_absent(self, name: str, value: Any, preload: bool = True) -> bool:
        return await self._database.add_option(self._model, name, serialize(value), autoload=preload)

    async def replace(self, name: str, value: Any) -> bool:
        return await self._database.update_option(self._model, name, serialize(value))

    async def read(self, name: str) -> Optional[Any]:
        return deserialize(await self._database.get_option(self._model, name))

    async def read_row(self, name: str) -> Optional[Tuple[Any, bool]]:
        row = await self._database.get_option_row(self._model, name)
        if row is None:
            return None
        return deserialize(row[0]), row[1]

    async def remove(self, name: str) -> bool:
        return await self._database.delete_option(self._model, name)

    async def scan_names(self, prefix: str, exclude_prefix: Optional[str] = None) -> List[str]:
        names = await self._database.get_option_names(self._model, prefix, exclude_prefix)
        return strip_prefix(names, prefix)

    async def scan_names_older_than(self, prefix: str, cutoff: int) -> List[str]:
        names = await self._database.get_option_names_older_than(self._model, prefix, cutoff)
        return strip_prefix(names, prefix)

    async def load_preloaded(self) -> Dict[str, Any]:
        rows = await self._database.get_autoloaded_options(self._model)
        return {name: deserialize(raw) for name, raw in rows.items()}


class RedisOptionBackend(OptionBackend):
    """
    Redis-backed options table.

    Key schema:
        {namespace}:{table}:values    -> HASH {name -> JSON value}
        {namespace}:{table}:autoload  -> SET {names created with preload}

    Best for: deployments that already run Redis.
    """

    def __init__(self, client: "redis.Redis", namespace: str = "temporaries",
                 table: str = OPTIONS_TABLE):
        self.redis = client
        self.table = table
        self._values_key = f"{namespace}:{table}:values"
        self._autoload_key = f"{namespace}:{table}:autoload"

    async def put_if_absent(self, name: str, value: Any, preload: bool = True) -> bool:
        try:
            added = await self.redis.hsetnx(self._values_key, name, serialize(value))
            if not added:
                return False
            if preload:
                await self.redis.sadd(self._autoload_key, name)
            else:
                await self.redis.srem(self._autoload_key, name)
            return True
        except Exception as e:
            logger.error("Redis option add failed", table=self.table, name=name, error=str(e))
            return False

    async def replace(self, name: str, value: Any) -> bool:
        try:
            serialized = serialize(value)
            current = await self.redis.hget(self._values_key, name)
            if current is None or ensure_str(current) == serialized:
                return False
            await self.redis.hset(self._values_key, name, serialized)
            return True
        except Exception as e:
            logger.error("Redis option update failed", table=self.table, name=name, error=str(e))
            return False

    async def read(self, name: str) -> Optional[Any]:
        try:
            return deserialize(ensure_str(await self.redis.hget(self._values_key, name)))
        except Exception as e:
            logger.error("Redis option get failed", table=self.table, name=name, error=str(e))
            return None

    async def read_row(self, name: str) -> Optional[Tuple[Any, bool]]:
        try:
            raw = await self.redis.hget(self._values_key, name)
            if raw is None:
                return None
            preload = await self.redis.sismember(self._autoload_key, name)
            return deserialize(ensure_str(raw)), bool(preload)
        except Exception as e:
            logger.error("Redis option get failed", table=self.table, name=name, error=str(e))
            return None

    async def remove(self, name: str) -> bool:
        try:
            deleted = await self.redis.hdel(self._values_key, name)
            await self.redis.srem(self._autoload_key, name)
            return bool(deleted)
        except Exception as e:
            logger.error("Redis option delete failed", table=self.table, name=name, error=str(e))
            return False

    async def scan_names(self, prefix: str, exclude_prefix: Optional[str] = None) -> List[str]:
        try:
            names = [ensure_str(n) for n in await self.redis.hkeys(self._values_key)]
        except Exception as e:
            logger.error("Redis option scan failed", table=self.table, prefix=prefix, error=str(e))
            return []
        matched = sorted(
            n for n in names
            if n.startswith(prefix) and not (exclude_prefix and n.startswith(exclude_prefix))
        )
        return strip_prefix(matched, prefix)

    async def scan_names_older_than(self, prefix: str, cutoff: int) -> List[str]:
        try:
            rows = await self.redis.hgetall(self._values_key)
        except Exception as e:
            logger.error("Redis option scan failed", table=self.table, prefix=prefix, error=str(e))
            return []
        matched = sorted(
            name for name, raw in _decode_items(rows)
            if name.startswith(prefix) and _as_int(raw) < cutoff
        )
        return strip_prefix(matched, prefix)

    async def load_preloaded(self) -> Dict[str, Any]:
        try:
            names = sorted(ensure_str(n) for n in await self.redis.smembers(self._autoload_key))
            if not names:
                return {}
            values = await self.redis.hmget(self._values_key, names)
        except Exception as e:
            logger.error("Redis preload failed", table=self.table, error=str(e))
            return {}
        return {
            name: deserialize(ensure_str(raw))
            for name, raw in zip(names, values)
            if raw is not None
        }

    async def close(self) -> None:
        await self.redis.aclose()
        logger.info("Redis option backend closed", table=self.table)


class MemoryOptionBackend(OptionBackend):
    """
    In-process options table.

    Rows are kept serialized so that values behave as they would after a
    round trip through a real store.
    """

    def __init__(self, table: str = OPTIONS_TABLE):
        self.table = table
        self.rows: Dict[str, Tuple[str, bool]] = {}

    async def put_if_absent(self, name: str, value: Any, preload: bool = True) -> bool:
        if name in self.rows:
            return False
        self.rows[name] = (serialize(value), preload)
        return True

    async def replace(self, name: str, value: Any) -> bool:
        row = self.rows.get(name)
        serialized = serialize(value)
        if row is None or row[0] == serialized:
            return False
        self.rows[name] = (serialized, row[1])
        return True

    async def read(self, name: str) -> Optional[Any]:
        row = self.rows.get(name)
        return deserialize(row[0]) if row else None

    async def read_row(self, name: str) -> Optional[Tuple[Any, bool]]:
        row = self.rows.get(name)
        return (deserialize(row[0]), row[1]) if row else None

    async def remove(self, name: str) -> bool:
        return self.rows.pop(name, None) is not None

    async def scan_names(self, prefix: str, exclude_prefix: Optional[str] = None) -> List[str]:
        matched = sorted(
            n for n in self.rows
            if n.startswith(prefix) and not (exclude_prefix and n.startswith(exclude_prefix))
        )
        return strip_prefix(matched, prefix)

    async def scan_names_older_than(self, prefix: str, cutoff: int) -> List[str]:
        matched = sorted(
            n for n, (raw, _) in self.rows.items()
            if n.startswith(prefix) and _as_int(raw) < cutoff
        )
        return strip_prefix(matched, prefix)

    async def load_preloaded(self) -> Dict[str, Any]:
        return {n: deserialize(raw) for n, (raw, preload) in self.rows.items() if preload}


def ensure_str(value):
    """Ensure value is a string, handling both bytes and str."""
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return value


def _decode_items(rows: Dict) -> List[Tuple[str, str]]:
    return [(ensure_str(k), ensure_str(v)) for k, v in rows.items()]


def as_int(value: Any) -> int:
    """Integer view of a value, matching SQL CAST semantics for junk (0)."""
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _as_int(raw: str) -> int:
    try:
        return as_int(deserialize(raw))
    except ValueError:
        return 0


def create_backend(settings: Settings, database: Optional[Database] = None,
                   table: str = OPTIONS_TABLE,
                   redis_client: Optional["redis.Redis"] = None) -> OptionBackend:
    """
    Factory function to create the configured option backend for a table.

    Args:
        settings: Settings with storage_backend, redis_url, redis_namespace
        database: Database service (required for the database backend)
        table: Table name, ``options`` or ``sitemeta``
        redis_client: Optional pre-built Redis client

    Returns:
        Configured OptionBackend instance
    """
    backend_type = settings.storage_backend.lower()

    if backend_type == "redis":
        if redis_client is None:
            if not settings.redis_url:
                raise ValueError("redis_url required for redis backend")
            redis_client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True
            )
        logger.debug("Using RedisOptionBackend", table=table)
        return RedisOptionBackend(redis_client, namespace=settings.redis_namespace, table=table)

    if backend_type == "memory":
        logger.debug("Using MemoryOptionBackend", table=table)
        return MemoryOptionBackend(table=table)

    if backend_type != "database":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

    if database is None:
        raise ValueError("database required for database backend")

    logger.debug("Using DatabaseOptionBackend", table=table)
    return DatabaseOptionBackend(database, table=table)
