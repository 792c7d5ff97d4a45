"""
Autoloaded option store.

All option rows are read once per request into a cache; reads are then
synchronous, which lets settings and rendering code read values without
awaiting. Reads go through an optional set of read filters (the preview
overrides), writes always go to the database and the unfiltered cache.
"""

import copy
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.models.option import Option
from src.kernel.storage.errors import StorageError
from src.logging_config import get_logger

logger = get_logger(__name__)

# Returned by get/get_raw for an absent option when passed as the default
MISSING = object()


class ReadFilters(Protocol):
    """Anything that can rewrite a value on its way out of the store."""

    def apply(self, key: str, value: Any) -> Any:
        ...


class OptionStore:
    """
    Key/value option storage.

    Usage:
        options = OptionStore(session)
        await options.load()
        options.get("blogname", "")
        await options.update("blogname", "My Site")
    """

    def __init__(self, session: AsyncSession, read_filters: Optional[ReadFilters] = None):
        self.session = session
        self.read_filters = read_filters
        self._cache: Dict[str, Any] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """Read every autoloaded option into the cache."""
        try:
            result = await self.session.execute(select(Option).where(Option.autoload.is_(True)))
        except SQLAlchemyError as exc:
            logger.error("Failed to load options", exc_info=True)
            raise StorageError("Could not load options") from exc
        self._cache = {row.name: row.value for row in result.scalars().all()}
        self._loaded = True

    def get_raw(self, name: str, default: Any = None) -> Any:
        """Read an option bypassing read filters."""
        value = self._cache.get(name, MISSING)
        if value is MISSING:
            return default
        return copy.deepcopy(value)

    def get(self, name: str, default: Any = None) -> Any:
        """Read an option as the rest of the application should see it."""
        value = self.get_raw(name, default)
        if self.read_filters is not None:
            value = self.read_filters.apply(name, value)
        return value

    def exists(self, name: str) -> bool:
        return name in self._cache

    async def update(self, name: str, value: Any) -> None:
        """
        Write an option.

        Raises:
            StorageError: If the write fails; the cache is left untouched
        """
        stored = copy.deepcopy(value)
        try:
            row = await self.session.get(Option, name)
            if row is None:
                self.session.add(Option(name=name, value=stored))
            else:
                row.value = stored
            await self.session.flush()
        except SQLAlchemyError as exc:
            logger.error("Failed to write option", extra={"option": name}, exc_info=True)
            raise StorageError(f"Could not write option {name}", key=name) from exc
        self._cache[name] = copy.deepcopy(value)

    async def update_many(self, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            await self.update(name, value)
