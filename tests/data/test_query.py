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
"""Tests for translating find options into SQLAlchemy statements."""

from __future__ import annotations

import pytest
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pyrecord.data.active_model import ActiveModel
from pyrecord.data.query import (
    as_list,
    build_select,
    include_alias,
    include_loaders,
    load_options,
    where_clauses,
)
from pyrecord.kernel.exceptions import EagerLoadingException, InvalidRequestException


class Shelf(ActiveModel):
    __tablename__ = "query_shelves"

    id: Mapped[int] = mapped_column(primary_key=True)
    label: Mapped[str] = mapped_column(String(20))
    volumes: Mapped[list[Volume]] = relationship(back_populates="shelf")


class Volume(ActiveModel):
    __tablename__ = "query_volumes"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(50))
    shelf_id: Mapped[int | None] = mapped_column(ForeignKey("query_shelves.id"))
    shelf: Mapped[Shelf | None] = relationship(back_populates="volumes")


def _sql(stmt) -> str:
    return str(stmt.compile(compile_kwargs={"literal_binds": True})).replace("\n", " ")


class TestAsList:
    def test_normalizes(self):
        assert as_list(None) == []
        assert as_list("a") == ["a"]
        assert as_list(("a", "b")) == ["a", "b"]


class TestWhereClauses:
    def test_equality_in_and_null(self):
        clauses = where_clauses(Volume, {"title": "Dune", "id": [1, 2], "shelf_id": None})
        rendered = [_sql(c) for c in clauses]
        assert rendered == [
            "query_volumes.title = 'Dune'",
            "query_volumes.id IN (1, 2)",
            "query_volumes.shelf_id IS NULL",
        ]

    def test_unknown_column(self):
        with pytest.raises(InvalidRequestException, match="no column 'author'"):
            where_clauses(Volume, {"author": "Herbert"})

    def test_relationship_is_not_a_column(self):
        with pytest.raises(InvalidRequestException):
            where_clauses(Volume, {"shelf": 1})


class TestIncludeAlias:
    def test_string_and_mapping(self):
        assert include_alias("shelf", Volume) == "shelf"
        assert include_alias({"model": Shelf, "as": "shelf"}, Volume) == "shelf"

    def test_class_without_alias(self):
        with pytest.raises(EagerLoadingException) as exc_info:
            include_alias(Shelf, Volume)
        assert str(exc_info.value).startswith("Shelf is associated to Volume using an alias.")

    def test_mapping_without_alias(self):
        with pytest.raises(EagerLoadingException):
            include_alias({"model": Shelf}, Volume)


class TestIncludeLoaders:
    def test_nested(self):
        loaders = include_loaders(Shelf, [{"as": "volumes", "include": ["shelf"]}])
        assert len(loaders) == 2

    def test_unknown_relation(self):
        with pytest.raises(EagerLoadingException, match="author is not associated to Volume!"):
            include_loaders(Volume, ["author"])


class TestBuildSelect:
    def test_empty_options(self):
        assert _sql(build_select(Volume, None)).startswith("SELECT query_volumes.id")

    def test_order_limit_offset(self):
        sql = _sql(build_select(Volume, {"order": ["title", ("id", "DESC")], "limit": 5, "offset": 10}))
        assert "ORDER BY query_volumes.title ASC, query_volumes.id DESC" in sql
        assert "LIMIT 5" in sql
        assert "OFFSET 10" in sql

    def test_where(self):
        sql = _sql(build_select(Volume, {"where": {"title": "Dune"}}))
        assert "WHERE query_volumes.title = 'Dune'" in sql

    def test_unknown_order_column(self):
        with pytest.raises(InvalidRequestException):
            build_select(Volume, {"order": ["rating"]})


class TestLoadOptions:
    def test_keeps_only_load_shaping_keys(self):
        options = {"where": {"id": 1}, "include": ["shelf"], "attributes": ["id"], "limit": 1}
        assert load_options(options) == {"include": ["shelf"], "attributes": ["id"]}
        assert load_options(None) == {}
