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
"""Tests for the active-record engine (no guard, no alias inference)."""

from __future__ import annotations

import pytest
from sqlalchemy import ForeignKey, String
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pyrecord.data.active_model import ActiveModel
from pyrecord.data.query import FindAndCountResult
from pyrecord.kernel.exceptions import (
    EagerLoadingException,
    InfrastructureException,
    InvalidRequestException,
    RecordNotPersistedException,
)


class Maker(ActiveModel):
    __tablename__ = "engine_makers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True)
    gadgets: Mapped[list[Gadget]] = relationship(back_populates="maker")


class Gadget(ActiveModel):
    __tablename__ = "engine_gadgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))
    price: Mapped[float] = mapped_column(default=0.0)
    maker_id: Mapped[int | None] = mapped_column(ForeignKey("engine_makers.id"))
    maker: Mapped[Maker | None] = relationship(back_populates="gadgets")


class Unbound(ActiveModel):
    __tablename__ = "engine_unbound"

    id: Mapped[int] = mapped_column(primary_key=True)


@pytest.fixture(autouse=True)
def bind(session_factory):
    Maker.init(session_factory)
    Gadget.init(session_factory)


async def _seed():
    acme = await Maker.create({"name": "Acme"})
    await Gadget.create({"name": "Rocket", "price": 10.0, "maker_id": acme.id})
    await Gadget.create({"name": "Anvil", "price": 25.0, "maker_id": acme.id})
    await Gadget.create({"name": "Magnet", "price": 5.0})
    return acme


class TestSetup:
    def test_requires_expire_on_commit_false(self, engine):
        with pytest.raises(InfrastructureException, match="expire_on_commit=False"):
            Maker.init(async_sessionmaker(engine))

    @pytest.mark.asyncio
    async def test_unbound_model_cannot_query(self):
        with pytest.raises(InfrastructureException, match="No session factory"):
            await Unbound.find_all()

    def test_table_name(self):
        assert Gadget.get_table_name() == "engine_gadgets"


class TestBuildAndCreate:
    def test_build_does_not_persist(self):
        gadget = Gadget.build({"name": "Rocket"})
        assert gadget.name == "Rocket"
        assert gadget.is_new_record

    def test_keyword_values(self):
        assert Gadget(name="Rocket", price=3.0).price == 3.0

    def test_unknown_attribute_is_rejected(self):
        with pytest.raises(TypeError, match="colour"):
            Gadget.build({"colour": "red"})

    def test_bulk_build(self):
        gadgets = Gadget.bulk_build([{"name": "A"}, {"name": "B"}])
        assert [g.name for g in gadgets] == ["A", "B"]

    def test_nested_build_needs_alias(self):
        with pytest.raises(EagerLoadingException, match="'as'"):
            Maker.build({"name": "Acme", "gadgets": [{"name": "Rocket"}]}, {"include": [{"model": Gadget}]})

    def test_nested_values_without_include_are_rejected(self):
        with pytest.raises(EagerLoadingException, match="gadgets") as exc_info:
            Maker.build({"name": "Acme", "gadgets": [{"name": "Rocket"}]})
        assert exc_info.value.context == {"model": "Maker", "include": "gadgets"}
        with pytest.raises(EagerLoadingException, match="maker"):
            Gadget.build({"name": "Rocket", "maker": {"name": "Acme"}})

    def test_related_instances_need_no_include(self):
        maker = Maker.build({"name": "Acme"})
        gadget = Gadget.build({"name": "Rocket", "maker": maker})
        assert gadget.maker is maker

    @pytest.mark.asyncio
    async def test_create_with_aliased_include_saves_children(self):
        maker = await Maker.create(
            {"name": "Acme", "gadgets": [{"name": "Rocket"}, {"name": "Anvil"}]},
            {"include": [{"model": Gadget, "as": "gadgets"}]},
        )
        assert not maker.is_new_record
        assert {g.name for g in maker.gadgets} == {"Rocket", "Anvil"}
        assert await Gadget.count({"where": {"maker_id": maker.id}}) == 2


class TestFinders:
    @pytest.mark.asyncio
    async def test_find_all_with_where_order_limit(self):
        await _seed()
        rows = await Gadget.find_all({"order": [("price", "desc")], "limit": 2})
        assert [g.name for g in rows] == ["Anvil", "Rocket"]
        rows = await Gadget.find_all({"where": {"name": ["Magnet", "Rocket"]}, "order": ["name"]})
        assert [g.name for g in rows] == ["Magnet", "Rocket"]

    @pytest.mark.asyncio
    async def test_where_none_is_null(self):
        await _seed()
        rows = await Gadget.find_all({"where": {"maker_id": None}})
        assert [g.name for g in rows] == ["Magnet"]

    @pytest.mark.asyncio
    async def test_find_all_aliases(self):
        await _seed()
        assert len(await Gadget.all()) == 3
        assert (await Gadget.find({"where": {"name": "Anvil"}})).price == 25.0

    @pytest.mark.asyncio
    async def test_find_one_returns_none(self):
        assert await Gadget.find_one({"where": {"name": "Nothing"}}) is None

    @pytest.mark.asyncio
    async def test_include_by_alias(self):
        await _seed()
        gadget = await Gadget.find_one({"where": {"name": "Rocket"}, "include": ["maker"]})
        assert gadget.maker.name == "Acme"

    @pytest.mark.asyncio
    async def test_include_without_alias_fails(self):
        with pytest.raises(EagerLoadingException):
            await Gadget.find_all({"include": [Maker]})

    @pytest.mark.asyncio
    async def test_include_of_unknown_relation_fails(self):
        with pytest.raises(EagerLoadingException, match="not associated"):
            await Gadget.find_all({"include": ["owner"]})

    @pytest.mark.asyncio
    async def test_unknown_column_fails(self):
        with pytest.raises(InvalidRequestException, match="colour"):
            await Gadget.find_all({"where": {"colour": "red"}})

    @pytest.mark.asyncio
    async def test_find_by_pk_and_aliases(self):
        acme = await _seed()
        assert (await Maker.find_by_pk(acme.id)).name == "Acme"
        assert (await Maker.find_by_id(acme.id)).name == "Acme"
        assert (await Maker.find_by_primary(acme.id)).name == "Acme"
        assert await Maker.find_by_pk(None) is None
        assert await Maker.find_by_pk(9999) is None

    @pytest.mark.asyncio
    async def test_find_by_pk_with_include(self):
        acme = await _seed()
        maker = await Maker.find_by_pk(acme.id, {"include": [{"as": "gadgets"}]})
        assert {g.name for g in maker.gadgets} == {"Rocket", "Anvil"}

    @pytest.mark.asyncio
    async def test_find_and_count_all(self):
        acme = await _seed()
        result = await Gadget.find_and_count_all({"where": {"maker_id": [acme.id]}, "limit": 1})
        assert isinstance(result, FindAndCountResult)
        assert result.count == 2
        assert len(result.rows) == 1
        assert (await Gadget.find_and_count()).count == 3


class TestFindOrCreate:
    @pytest.mark.asyncio
    async def test_find_or_build(self):
        await _seed()
        found, built = await Gadget.find_or_build({"where": {"name": "Rocket"}})
        assert (found.name, built) == ("Rocket", False)
        fresh, built = await Gadget.find_or_initialize({"where": {"name": "Laser"}, "defaults": {"price": 99.0}})
        assert built is True
        assert fresh.is_new_record
        assert fresh.price == 99.0

    @pytest.mark.asyncio
    async def test_find_or_create(self):
        maker, created = await Maker.find_or_create({"where": {"name": "Globex"}})
        assert created is True
        again, created = await Maker.find_or_create({"where": {"name": "Globex"}})
        assert created is False
        assert again.id == maker.id

    @pytest.mark.asyncio
    async def test_find_create_find(self):
        maker, created = await Maker.find_create_find({"where": {"name": "Initech"}})
        assert created is True
        again, created = await Maker.find_create_find({"where": {"name": "Initech"}})
        assert (again.id, created) == (maker.id, False)


class TestAggregates:
    @pytest.mark.asyncio
    async def test_count(self):
        await _seed()
        assert await Gadget.count() == 3
        assert await Gadget.count({"where": {"maker_id": None}}) == 1

    @pytest.mark.asyncio
    async def test_aggregate_helpers(self):
        await _seed()
        assert await Gadget.max("price") == 25.0
        assert await Gadget.min("price") == 5.0
        assert await Gadget.sum("price") == 40.0
        assert await Gadget.aggregate("price", "count", {"where": {"name": "Anvil"}}) == 1

    @pytest.mark.asyncio
    async def test_unsupported_function(self):
        with pytest.raises(InvalidRequestException, match="median"):
            await Gadget.aggregate("price", "median")


class TestBulkWrites:
    @pytest.mark.asyncio
    async def test_update(self):
        await _seed()
        assert await Gadget.update({"price": 1.0}, {"where": {"maker_id": None}}) == 1
        assert (await Gadget.find_one({"where": {"name": "Magnet"}})).price == 1.0

    @pytest.mark.asyncio
    async def test_destroy(self):
        await _seed()
        assert await Gadget.destroy({"where": {"name": "Anvil"}}) == 1
        assert await Gadget.count() == 2
        assert await Gadget.destroy({"truncate": True}) == 2

    @pytest.mark.asyncio
    async def test_destroy_needs_where(self):
        with pytest.raises(InvalidRequestException, match="where"):
            await Gadget.destroy()


class TestInstanceOperations:
    @pytest.mark.asyncio
    async def test_save_updates_existing_row(self):
        gadget = await Gadget.create({"name": "Rocket"})
        gadget.price = 42.0
        await gadget.save()
        assert (await Gadget.find_by_pk(gadget.id)).price == 42.0

    @pytest.mark.asyncio
    async def test_reload_discards_local_changes(self):
        gadget = await Gadget.create({"name": "Rocket", "price": 10.0})
        gadget.price = 99.0
        result = await gadget.reload()
        assert result is gadget
        assert gadget.price == 10.0

    @pytest.mark.asyncio
    async def test_reload_picks_up_remote_changes_and_includes(self):
        acme = await _seed()
        gadget = await Gadget.find_one({"where": {"name": "Magnet"}})
        await Gadget.update({"maker_id": acme.id}, {"where": {"name": "Magnet"}})
        await gadget.reload({"include": ["maker"]})
        assert gadget.maker_id == acme.id
        assert gadget.maker.name == "Acme"

    @pytest.mark.asyncio
    async def test_reload_unsaved_record(self):
        with pytest.raises(RecordNotPersistedException):
            await Gadget.build({"name": "Ghost"}).reload()

    @pytest.mark.asyncio
    async def test_reload_deleted_record(self):
        gadget = await Gadget.create({"name": "Rocket"})
        await Gadget.destroy({"where": {"id": gadget.id}})
        with pytest.raises(RecordNotPersistedException, match="no longer exists"):
            await gadget.reload()

    @pytest.mark.asyncio
    async def test_delete(self):
        gadget = await Gadget.create({"name": "Rocket"})
        await gadget.delete()
        assert await Gadget.find_by_pk(gadget.id) is None

    @pytest.mark.asyncio
    async def test_delete_unsaved_record(self):
        with pytest.raises(RecordNotPersistedException):
            await Gadget.build({"name": "Ghost"}).delete()

    @pytest.mark.asyncio
    async def test_to_dict_and_repr(self):
        gadget = await Gadget.create({"name": "Rocket", "price": 1.5, "maker_id": None})
        assert gadget.to_dict() == {"id": gadget.id, "name": "Rocket", "price": 1.5, "maker_id": None}
        assert repr(gadget) == f"<Gadget ({gadget.id},)>"
        assert repr(Gadget.build({"name": "x"})) == "<Gadget (new)>"
