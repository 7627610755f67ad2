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
"""Translate find options into SQLAlchemy statements.

Find options are plain dicts::

    {
        "where": {"status": "open", "id": [1, 2, 3]},
        "attributes": ["id", "status"],
        "include": [{"as": "customer", "include": ["address"]}],
        "order": ["created_at", ("id", "desc")],
        "limit": 10,
        "offset": 20,
    }

Include entries must name the relationship to load, either as a string or
through the ``"as"`` key. Entries that only carry a ``"model"`` are
expected to have been resolved by the alias resolver first.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, inspect as sa_inspect, select
from sqlalchemy.orm import Load, QueryableAttribute, load_only, selectinload

from pyrecord.kernel.exceptions import EagerLoadingException, InvalidRequestException

T = TypeVar("T")

_LOAD_KEYS = ("attributes", "include")


@dataclass(frozen=True)
class FindAndCountResult(Generic[T]):
    """Rows of one query plus the number of rows matching its ``where``.

    Attributes:
        count: Total number of matching rows, ignoring limit/offset.
        rows: The rows actually fetched.
    """

    count: int
    rows: list[T]


def as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def column_attribute(model: type, name: str) -> QueryableAttribute[Any]:
    """Return the mapped column attribute *name* of *model*."""
    mapper = sa_inspect(model)
    if name not in mapper.column_attrs:
        raise InvalidRequestException(
            f"{model.__name__} has no column '{name}'",
            context={"model": model.__name__, "column": name},
        )
    return getattr(model, name)


def where_clauses(model: type, where: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
    """Equality predicates; lists and tuples become ``IN``, ``None`` becomes ``IS NULL``."""
    clauses: list[ColumnElement[bool]] = []
    for key, value in (where or {}).items():
        column = column_attribute(model, key)
        if isinstance(value, (list, tuple, set, frozenset)):
            clauses.append(column.in_(list(value)))
        elif value is None:
            clauses.append(column.is_(None))
        else:
            clauses.append(column == value)
    return clauses


def primary_key_clauses(model: type, identity: Iterable[Any]) -> list[ColumnElement[bool]]:
    mapper = sa_inspect(model)
    return [column == value for column, value in zip(mapper.primary_key, identity, strict=True)]


def include_alias(entry: Any, model: type) -> str:
    """Return the relationship name an include entry refers to."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, Mapping) and entry.get("as"):
        return str(entry["as"])
    target = entry.get("model") if isinstance(entry, Mapping) else entry
    target_name = getattr(target, "__name__", repr(target))
    raise EagerLoadingException(
        f"{target_name} is associated to {model.__name__} using an alias. "
        "You must use the 'as' keyword to specify the alias within your include statement.",
        context={"model": model.__name__, "include": target_name},
    )


def relationship_attribute(model: type, alias: str) -> QueryableAttribute[Any]:
    mapper = sa_inspect(model)
    if alias not in mapper.relationships:
        raise EagerLoadingException(
            f"{alias} is not associated to {model.__name__}!",
            context={"model": model.__name__, "include": alias},
        )
    return getattr(model, alias)


def include_loaders(model: type, includes: Any, parent: Load | None = None) -> list[Load]:
    """Build ``selectinload`` options for (possibly nested) include entries."""
    loaders: list[Load] = []
    for entry in as_list(includes):
        attribute = relationship_attribute(model, include_alias(entry, model))
        loader = selectinload(attribute) if parent is None else parent.selectinload(attribute)
        loaders.append(loader)
        nested = entry.get("include") if isinstance(entry, Mapping) else None
        if nested:
            loaders.extend(include_loaders(attribute.property.mapper.class_, nested, loader))
    return loaders


def _order_by(model: type, order: Any) -> list[ColumnElement[Any]]:
    terms: list[ColumnElement[Any]] = []
    for item in as_list(order):
        if isinstance(item, str):
            name, direction = item, "asc"
        else:
            name, direction = item[0], str(item[1]).lower()
        column = column_attribute(model, name)
        terms.append(column.desc() if direction == "desc" else column.asc())
    return terms


def build_select(model: type, options: Mapping[str, Any] | None) -> Select[Any]:
    """Build the SELECT for *model* described by find *options*."""
    options = options or {}
    stmt = select(model).where(*where_clauses(model, options.get("where")))

    attributes = options.get("attributes")
    if attributes:
        stmt = stmt.options(load_only(*(column_attribute(model, a) for a in attributes)))
    loaders = include_loaders(model, options.get("include"))
    if loaders:
        stmt = stmt.options(*loaders)

    order = _order_by(model, options.get("order"))
    if order:
        stmt = stmt.order_by(*order)
    if options.get("limit") is not None:
        stmt = stmt.limit(int(options["limit"]))
    if options.get("offset") is not None:
        stmt = stmt.offset(int(options["offset"]))
    return stmt


def load_options(options: Mapping[str, Any] | None) -> dict[str, Any]:
    """Keep only the keys that shape what is loaded for one known row."""
    return {key: value for key, value in (options or {}).items() if key in _LOAD_KEYS}
