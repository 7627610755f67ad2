# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Active-record persistence engine built on SQLAlchemy 2.0 asyncio.

Record classes carry their own data access: class-level operations
(``find_all``, ``create``, ...) run queries, instances ``save`` and
``reload`` themselves. Every operation opens a short-lived session from
the factory handed to :meth:`ActiveModel.init`.

Usage::

    class Order(ActiveModel):
        __tablename__ = "orders"

        id: Mapped[int] = mapped_column(primary_key=True)
        status: Mapped[str] = mapped_column(String(20))

    Order.init(async_sessionmaker(engine, expire_on_commit=False))
    orders = await Order.find_all({"where": {"status": "open"}})
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from pyrecord.data.query import (
    FindAndCountResult,
    as_list,
    build_select,
    include_alias,
    load_options,
    primary_key_clauses,
    where_clauses,
)
from pyrecord.kernel.exceptions import (
    EagerLoadingException,
    InfrastructureException,
    InvalidRequestException,
    RecordNotPersistedException,
)

_AGGREGATE_FUNCTIONS = frozenset({"count", "sum", "min", "max", "avg"})


def _is_raw_values(value: Any) -> bool:
    # plain dicts (or lists of them) rather than record instances
    if isinstance(value, Mapping):
        return True
    return isinstance(value, (list, tuple)) and any(isinstance(item, Mapping) for item in value)


class ActiveModel(DeclarativeBase):
    """Declarative base whose classes query and persist themselves."""

    # async_sessionmaker bound by init(); not annotated so declarative scanning skips it
    _session_factory = None

    def __init__(self, values: Mapping[str, Any] | None = None, options: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._assign({**(values or {}), **kwargs}, options or {})

    def _assign(self, values: Mapping[str, Any], options: Mapping[str, Any]) -> None:
        cls = type(self)
        mapper = sa_inspect(cls, raiseerr=False)
        relationships = mapper.relationships if mapper is not None else {}
        includes = {include_alias(entry, cls): entry for entry in as_list(options.get("include"))}

        for key, value in values.items():
            if key in relationships and key in includes and value is not None:
                relationship = relationships[key]
                related = relationship.mapper.class_
                entry = includes[key]
                nested = {"include": entry["include"]} if isinstance(entry, Mapping) and entry.get("include") else None
                value = related.bulk_build(value, nested) if relationship.uselist else related.build(value, nested)
            elif key in relationships and _is_raw_values(value):
                raise EagerLoadingException(
                    f"Values for {key} need an include entry with 'as': '{key}' to be built on {cls.__name__}",
                    context={"model": cls.__name__, "include": key},
                )
            elif not hasattr(cls, key):
                raise TypeError(f"{key!r} is an invalid keyword argument for {cls.__name__}")
            setattr(self, key, value)

    # ------------------------------------------------------------------
    # Setup and sessions
    # ------------------------------------------------------------------

    @classmethod
    def init(cls, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Bind *cls* (and subclasses without their own binding) to a session factory.

        The factory must be created with ``expire_on_commit=False`` so that
        records stay readable after their session closes.
        """
        if getattr(session_factory, "kw", {}).get("expire_on_commit", True):
            raise InfrastructureException(
                f"Session factory for {cls.__name__} must be created with expire_on_commit=False",
                context={"model": cls.__name__},
            )
        cls._session_factory = session_factory

    @classmethod
    def _open_session(cls) -> AsyncSession:
        factory = cls._session_factory
        if factory is None:
            raise InfrastructureException(
                f"No session factory configured for {cls.__name__}",
                context={"model": cls.__name__},
            )
        return factory()

    @classmethod
    def get_table_name(cls) -> str:
        return cls.__table__.name

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    @classmethod
    def build(cls, values: Mapping[str, Any] | None = None, options: Mapping[str, Any] | None = None) -> Any:
        """Instantiate without saving. Aliased includes build nested records."""
        return cls(values, options)

    @classmethod
    def bulk_build(cls, records: list[Mapping[str, Any]], options: Mapping[str, Any] | None = None) -> list[Any]:
        return [cls.build(values, options) for values in records]

    @classmethod
    async def create(cls, values: Mapping[str, Any] | None = None, options: Mapping[str, Any] | None = None) -> Any:
        """Build and save in one step."""
        instance = cls.build(values, options)
        return await instance.save()

    # ------------------------------------------------------------------
    # Finders
    # ------------------------------------------------------------------

    @classmethod
    async def find_all(cls, options: Mapping[str, Any] | None = None) -> list[Any]:
        stmt = build_select(cls, options)
        async with cls._open_session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().unique().all())

    @classmethod
    async def all(cls, options: Mapping[str, Any] | None = None) -> list[Any]:
        """Alias of :meth:`find_all`."""
        return await cls.find_all(options)

    @classmethod
    async def find_one(cls, options: Mapping[str, Any] | None = None) -> Any | None:
        rows = await cls.find_all({**(options or {}), "limit": 1})
        return rows[0] if rows else None

    @classmethod
    async def find(cls, options: Mapping[str, Any] | None = None) -> Any | None:
        """Alias of :meth:`find_one`."""
        return await cls.find_one(options)

    @classmethod
    async def find_by_pk(cls, pk: Any, options: Mapping[str, Any] | None = None) -> Any | None:
        """Find a record by primary key. ``None`` as key finds nothing."""
        if pk is None:
            return None
        identity = pk if isinstance(pk, tuple) else (pk,)
        stmt = build_select(cls, load_options(options)).where(*primary_key_clauses(cls, identity))
        async with cls._open_session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    @classmethod
    async def find_by_id(cls, pk: Any, options: Mapping[str, Any] | None = None) -> Any | None:
        """Alias of :meth:`find_by_pk`."""
        return await cls.find_by_pk(pk, options)

    @classmethod
    async def find_by_primary(cls, pk: Any, options: Mapping[str, Any] | None = None) -> Any | None:
        """Alias of :meth:`find_by_pk`."""
        return await cls.find_by_pk(pk, options)

    @classmethod
    async def find_and_count_all(cls, options: Mapping[str, Any] | None = None) -> FindAndCountResult[Any]:
        """Fetch a window of rows together with the total number of matches."""
        total = await cls.count(options)
        rows = await cls.find_all(options)
        return FindAndCountResult(count=total, rows=rows)

    @classmethod
    async def find_and_count(cls, options: Mapping[str, Any] | None = None) -> FindAndCountResult[Any]:
        """Alias of :meth:`find_and_count_all`."""
        return await cls.find_and_count_all(options)

    @classmethod
    async def find_or_build(cls, options: Mapping[str, Any] | None = None) -> tuple[Any, bool]:
        """Return ``(record, built)``; builds from ``where`` + ``defaults`` when nothing matches."""
        options = options or {}
        found = await cls.find_one(options)
        if found is not None:
            return found, False
        values = {**(options.get("where") or {}), **(options.get("defaults") or {})}
        return cls.build(values, options), True

    @classmethod
    async def find_or_initialize(cls, options: Mapping[str, Any] | None = None) -> tuple[Any, bool]:
        """Alias of :meth:`find_or_build`."""
        return await cls.find_or_build(options)

    @classmethod
    async def find_or_create(cls, options: Mapping[str, Any] | None = None) -> tuple[Any, bool]:
        """Return ``(record, created)``; creates from ``where`` + ``defaults`` when nothing matches."""
        options = options or {}
        found = await cls.find_one(options)
        if found is not None:
            return found, False
        values = {**(options.get("where") or {}), **(options.get("defaults") or {})}
        return await cls.create(values, options), True

    @classmethod
    async def find_create_find(cls, options: Mapping[str, Any] | None = None) -> tuple[Any, bool]:
        """Like :meth:`find_or_create`, but a unique-constraint race falls back to a second find."""
        options = options or {}
        found = await cls.find_one(options)
        if found is not None:
            return found, False
        values = {**(options.get("where") or {}), **(options.get("defaults") or {})}
        try:
            return await cls.create(values, options), True
        except IntegrityError:
            found = await cls.find_one(options)
            if found is None:
                raise
            return found, False

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @classmethod
    async def count(cls, options: Mapping[str, Any] | None = None) -> int:
        options = options or {}
        stmt = select(func.count()).select_from(cls).where(*where_clauses(cls, options.get("where")))
        async with cls._open_session() as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    @classmethod
    async def aggregate(cls, field: str, function: str, options: Mapping[str, Any] | None = None) -> Any:
        """Run ``function`` (count, sum, min, max, avg) over column *field*."""
        if function not in _AGGREGATE_FUNCTIONS:
            raise InvalidRequestException(
                f"Unsupported aggregate function '{function}'",
                context={"model": cls.__name__, "function": function},
            )
        options = options or {}
        column = getattr(cls, field)
        stmt = select(getattr(func, function)(column)).where(*where_clauses(cls, options.get("where")))
        async with cls._open_session() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    @classmethod
    async def max(cls, field: str, options: Mapping[str, Any] | None = None) -> Any:
        return await cls.aggregate(field, "max", options)

    @classmethod
    async def min(cls, field: str, options: Mapping[str, Any] | None = None) -> Any:
        return await cls.aggregate(field, "min", options)

    @classmethod
    async def sum(cls, field: str, options: Mapping[str, Any] | None = None) -> Any:
        return await cls.aggregate(field, "sum", options)

    # ------------------------------------------------------------------
    # Bulk writes
    # ------------------------------------------------------------------

    @classmethod
    async def update(cls, values: Mapping[str, Any], options: Mapping[str, Any] | None = None) -> int:
        """Update every row matching ``where``. Returns the affected row count."""
        options = options or {}
        stmt = sa_update(cls).where(*where_clauses(cls, options.get("where"))).values(**values)
        async with cls._open_session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return int(result.rowcount)

    @classmethod
    async def destroy(cls, options: Mapping[str, Any] | None = None) -> int:
        """Delete every row matching ``where``; ``{"truncate": True}`` deletes all rows."""
        options = options or {}
        if not options.get("where") and not options.get("truncate"):
            raise InvalidRequestException(
                f"{cls.__name__}.destroy() needs a 'where' option or truncate=True",
                context={"model": cls.__name__},
            )
        stmt = sa_delete(cls).where(*where_clauses(cls, options.get("where")))
        async with cls._open_session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return int(result.rowcount)

    # ------------------------------------------------------------------
    # Instance operations
    # ------------------------------------------------------------------

    @property
    def is_new_record(self) -> bool:
        return sa_inspect(self).identity is None

    async def save(self) -> Any:
        """Insert or update this record (and cascaded related records)."""
        async with type(self)._open_session() as session:
            session.add(self)
            await session.commit()
        return self

    async def reload(self, options: Mapping[str, Any] | None = None) -> Any:
        """Refresh this record's attributes from the database, discarding local changes.

        ``attributes`` and ``include`` options shape what is reloaded.
        """
        cls = type(self)
        identity = sa_inspect(self).identity
        if identity is None:
            raise RecordNotPersistedException(
                f"{cls.__name__} instance has not been saved and cannot be reloaded",
                context={"model": cls.__name__},
            )
        stmt = (
            build_select(cls, load_options(options))
            .where(*primary_key_clauses(cls, identity))
            .execution_options(populate_existing=True, autoflush=False)
        )
        async with cls._open_session() as session:
            session.add(self)
            result = await session.execute(stmt)
            if result.scalars().first() is None:
                raise RecordNotPersistedException(
                    f"{cls.__name__} instance {identity!r} no longer exists",
                    context={"model": cls.__name__, "identity": list(identity)},
                )
        return self

    async def delete(self) -> None:
        cls = type(self)
        if self.is_new_record:
            raise RecordNotPersistedException(
                f"{cls.__name__} instance has not been saved and cannot be deleted",
                context={"model": cls.__name__},
            )
        async with cls._open_session() as session:
            session.add(self)
            await session.delete(self)
            await session.commit()

    def to_dict(self) -> dict[str, Any]:
        """Loaded column values keyed by attribute name."""
        state = sa_inspect(self)
        return {attr.key: state.dict[attr.key] for attr in state.mapper.column_attrs if attr.key in state.dict}

    def __repr__(self) -> str:
        identity = sa_inspect(self).identity
        return f"<{type(self).__name__} {identity!r}>" if identity else f"<{type(self).__name__} (new)>"
