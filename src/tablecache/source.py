"""SQLAlchemy data source for the cache-aside runner.

The runner calls data-source operations by name, so any object with async
methods works. ``ModelDataSource`` provides the usual finder operations for
one declarative model on top of an ``async_sessionmaker``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tablecache.cache.bypass import QueryOptions

ModelT = TypeVar("ModelT")


def _as_options(options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
    if options is None:
        return QueryOptions()
    if isinstance(options, QueryOptions):
        return options
    return QueryOptions.from_mapping(options)


class ModelDataSource(Generic[ModelT]):
    """Finder operations for one SQLAlchemy model.

    Operations:
        find_one(options): first matching record or None
        find_all(options): list of matching records
        count(options): number of matching rows

    With ``attributes`` set, rows are returned as plain dicts of the
    selected columns instead of model instances.
    """

    operations = frozenset({"find_one", "find_all", "count"})

    def __init__(self, model: type[ModelT], session_factory: async_sessionmaker[AsyncSession]):
        self.model = model
        self.session_factory = session_factory

    def _column(self, name: str) -> Any:
        try:
            return getattr(self.model, name)
        except AttributeError:
            raise ValueError(f"{self.model.__name__} has no column '{name}'") from None

    def _conditions(self, where: Mapping[str, Any]) -> list[Any]:
        return [self._column(name) == value for name, value in where.items()]

    def _select(self, opts: QueryOptions) -> Select[Any]:
        if opts.attributes:
            stmt = select(*(self._column(a) for a in opts.attributes))
        else:
            stmt = select(self.model)

        if opts.where:
            stmt = stmt.where(*self._conditions(opts.where))

        for name in opts.order or ():
            if name.startswith("-"):
                stmt = stmt.order_by(self._column(name[1:]).desc())
            else:
                stmt = stmt.order_by(self._column(name).asc())

        if opts.limit is not None:
            stmt = stmt.limit(opts.limit)
        if opts.offset is not None:
            stmt = stmt.offset(opts.offset)
        return stmt

    async def find_all(
        self, options: QueryOptions | Mapping[str, Any] | None = None
    ) -> list[Any]:
        """Return all records matching ``options``."""
        opts = _as_options(options)
        async with self.session_factory() as session:
            result = await session.execute(self._select(opts))
            if opts.attributes:
                return [dict(row._mapping) for row in result]
            return list(result.scalars().all())

    async def find_one(self, options: QueryOptions | Mapping[str, Any] | None = None) -> Any:
        """Return the first record matching ``options``, or None."""
        opts = _as_options(options)
        async with self.session_factory() as session:
            result = await session.execute(self._select(opts).limit(1))
            if opts.attributes:
                row = result.first()
                return dict(row._mapping) if row is not None else None
            return result.scalars().first()

    async def count(self, options: QueryOptions | Mapping[str, Any] | None = None) -> int:
        """Return the number of rows matching ``options``."""
        opts = _as_options(options)
        stmt = select(func.count()).select_from(self.model)  # type: ignore[arg-type]
        if opts.where:
            stmt = stmt.where(*self._conditions(opts.where))
        async with self.session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())
