"""Async database service with SQLModel and SQLAlchemy 2.0."""

import logging
from typing import Dict, List, Optional, Tuple, Type, Union
from sqlmodel import SQLModel, select
from sqlalchemy import Integer, cast
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.exc import IntegrityError
from contextlib import asynccontextmanager

from temporaries.core.config import Settings
from temporaries.models import Option, SiteMeta
from temporaries.core.logging import get_logger

logger = get_logger(__name__)

OptionTable = Type[Union[Option, SiteMeta]]


class Database:
    """Async database service with SQLModel."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = None
        self.async_session = None

    async def startup(self):
        """Initialize database connection and create tables."""
        if self.engine is not None:
            return

        try:
            logging.getLogger("aiosqlite").setLevel(logging.WARNING)
            logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

            engine_kwargs = {"echo": self.settings.database_echo}
            if not self.settings.is_sqlite:
                engine_kwargs["pool_size"] = self.settings.database_pool_size
                engine_kwargs["max_overflow"] = self.settings.database_max_overflow

            self.engine = create_async_engine(self.settings.database_url, **engine_kwargs)

            self.async_session = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

            logger.info("Database initialized successfully")

        except Exception as e:
            logger.error("Database startup failed", error=str(e))
            raise

    async def shutdown(self):
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
            logger.info("Database connections closed")

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise RuntimeError("Database not initialized")

        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    # ============================================================================
    # Single Options
    # ============================================================================

    async def get_option(self, table: OptionTable, name: str) -> Optional[str]:
        """Get serialized option value by name. Returns None if not found."""
        try:
            async with self.get_session() as session:
                stmt = select(table).where(table.name == name)
                result = await session.execute(stmt)
                entry = result.scalar_one_or_none()
                return entry.value if entry else None

        except Exception as e:
            logger.error("Failed to get option", table=table.__tablename__, name=name, error=str(e))
            return None

    async def get_option_row(self, table: OptionTable, name: str) -> Optional[Tuple[str, bool]]:
        """Get (serialized value, autoload) of an option. Returns None if not found."""
        try:
            async with self.get_session() as session:
                stmt = select(table.value, table.autoload).where(table.name == name)
                result = await session.execute(stmt)
                row = result.one_or_none()
                return (row[0], bool(row[1])) if row else None

        except Exception as e:
            logger.error("Failed to get option row", table=table.__tablename__, name=name, error=str(e))
            return None

    async def add_option(self, table: OptionTable, name: str, value: str,
                         autoload: bool = True) -> bool:
        """Insert a new option. Returns False if the name is already taken."""
        try:
            async with self.get_session() as session:
                stmt = select(table).where(table.name == name)
                result = await session.execute(stmt)
                if result.scalar_one_or_none() is not None:
                    return False

                session.add(table(name=name, value=value, autoload=autoload))
                await session.commit()
                return True

        except IntegrityError:
            # Inserted concurrently by another writer
            logger.debug("Option already added concurrently", table=table.__tablename__, name=name)
            return False
        except Exception as e:
            logger.error("Failed to add option", table=table.__tablename__, name=name, error=str(e))
            return False

    async def update_option(self, table: OptionTable, name: str, value: str) -> bool:
        """Replace the value of an existing option.

        Returns False if the option does not exist or already holds the value.
        """
        try:
            async with self.get_session() as session:
                stmt = select(table).where(table.name == name)
                result = await session.execute(stmt)
                existing = result.scalar_one_or_none()

                if existing is None or existing.value == value:
                    return False

                existing.value = value
                await session.commit()
                return True

        except Exception as e:
            logger.error("Failed to update option", table=table.__tablename__, name=name, error=str(e))
            return False

    async def delete_option(self, table: OptionTable, name: str) -> bool:
        """Delete an option. Returns False if it did not exist."""
        try:
            async with self.get_session() as session:
                stmt = select(table).where(table.name == name)
                result = await session.execute(stmt)
                entry = result.scalar_one_or_none()

                if entry is None:
                    return False

                await session.delete(entry)
                await session.commit()
                return True

        except Exception as e:
            logger.error("Failed to delete option", table=table.__tablename__, name=name, error=str(e))
            return False

    # ============================================================================
    # Bulk Queries
    # ============================================================================

    async def get_autoloaded_options(self, table: OptionTable) -> Dict[str, str]:
        """Get all options flagged for bulk loading as name -> serialized value."""
        try:
            async with self.get_session() as session:
                stmt = select(table).where(table.autoload == True)  # noqa: E712
                result = await session.execute(stmt)
                return {entry.name: entry.value for entry in result.scalars().all()}

        except Exception as e:
            logger.error("Failed to load autoloaded options", table=table.__tablename__, error=str(e))
            return {}

    async def get_option_names(self, table: OptionTable, prefix: str,
                               exclude_prefix: Optional[str] = None) -> List[str]:
        """Get names of options starting with prefix, optionally excluding another prefix."""
        try:
            async with self.get_session() as session:
                stmt = select(table.name).where(table.name.startswith(prefix, autoescape=True))
                if exclude_prefix:
                    stmt = stmt.where(~table.name.startswith(exclude_prefix, autoescape=True))
                stmt = stmt.order_by(table.name)
                result = await session.execute(stmt)
                return list(result.scalars().all())

        except Exception as e:
            logger.error("Failed to list option names", table=table.__tablename__,
                         prefix=prefix, error=str(e))
            return []

    async def get_option_names_older_than(self, table: OptionTable, prefix: str,
                                          cutoff: int) -> List[str]:
        """Get names of options starting with prefix whose integer value is below cutoff."""
        try:
            async with self.get_session() as session:
                stmt = (
                    select(table.name)
                    .where(table.name.startswith(prefix, autoescape=True))
                    .where(cast(table.value, Integer) < cutoff)
                    .order_by(table.name)
                )
                result = await session.execute(stmt)
                return list(result.scalars().all())

        except Exception as e:
            logger.error("Failed to scan expired option names", table=table.__tablename__,
                         prefix=prefix, error=str(e))
            return []
