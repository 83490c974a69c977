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
"""Tests for the generic Repository[T, ID] facade."""

from __future__ import annotations

from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy import ForeignKey, Integer, Select, String, func, select
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Mapped, mapped_column, relationship

from genrepo.data.bulk import BulkMode, DefaultBulkConfigProvider
from genrepo.data.relational.sqlalchemy.entity import AuditedEntity, Base
from genrepo.data.relational.sqlalchemy.repository import Repository
from genrepo.data.specification import Specification
from genrepo.kernel.exceptions import (
    ArgumentOutOfRangeException,
    InvalidArgumentException,
    InvalidRequestException,
    UnsupportedCapabilityException,
)


class RepoCategory(Base):
    __tablename__ = "repo_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))


class RepoProduct(AuditedEntity):
    __tablename__ = "repo_products"

    name: Mapped[str] = mapped_column(String(100))
    price: Mapped[float] = mapped_column(default=0.0)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("repo_categories.id"), nullable=True)
    category: Mapped[RepoCategory | None] = relationship()


class RepoTag(Base):
    __tablename__ = "repo_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    label: Mapped[str] = mapped_column(String(50))


class ProductRepository(Repository[RepoProduct, UUID]):
    pass


class CheapProducts(Specification[RepoProduct]):
    def __init__(self, limit: float) -> None:
        super().__init__(lambda p: p.price < limit)
        self.add_order_by("name")


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        category = RepoCategory(id=1, name="Tools")
        session.add(category)
        # P01..P25, price == index; P21..P25 soft-deleted.
        session.add_all(
            [
                RepoProduct(name=f"P{i:02d}", price=float(i), category=category, is_deleted=i > 20)
                for i in range(1, 26)
            ]
        )
        session.add_all([RepoTag(id=1, label="red"), RepoTag(id=2, label="blue")])
        await session.commit()
    return factory


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(session):
    return ProductRepository(session=session)


async def product_named(session: AsyncSession, name: str) -> RepoProduct:
    return (await session.execute(select(RepoProduct).where(RepoProduct.name == name))).scalar_one()


class TestConstruction:
    def test_generic_types_extracted(self):
        assert ProductRepository._entity_type is RepoProduct
        assert ProductRepository._id_type is UUID

    def test_model_required(self, session):
        with pytest.raises(TypeError):
            Repository(session=session)

    def test_session_required(self):
        with pytest.raises(TypeError):
            Repository(RepoProduct)

    def test_capabilities_resolved(self, repo, session):
        assert repo.capabilities.soft_deletable is True
        assert Repository(RepoTag, session).capabilities.soft_deletable is False


class TestReads:
    @pytest.mark.asyncio
    async def test_get_all_is_composable(self, repo, session):
        query = repo.get_all()
        assert isinstance(query, Select)
        rows = (await session.execute(query.where(RepoProduct.price <= 2))).scalars().all()
        assert sorted(p.name for p in rows) == ["P01", "P02"]

    @pytest.mark.asyncio
    async def test_find_all_excludes_soft_deleted(self, repo):
        assert len(await repo.find_all()) == 20
        assert len(await repo.find_all(include_deleted=True)) == 25

    @pytest.mark.asyncio
    async def test_find_by_id(self, repo, session):
        alive = await product_named(session, "P01")
        deleted = await product_named(session, "P21")
        assert await repo.find_by_id(alive.id) is alive
        assert await repo.find_by_id(deleted.id) is None
        assert await repo.find_by_id(deleted.id, include_deleted=True) is deleted
        assert await repo.find_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_find_by_and_find_all_by(self, repo, session):
        query = repo.find_by(lambda p: p.price > 18)
        assert sorted(p.name for p in (await session.execute(query)).scalars()) == ["P19", "P20"]
        found = await repo.find_all_by(lambda p: p.price > 18, include_deleted=True)
        assert len(found) == 7

    def test_find_by_rejects_none(self, repo):
        with pytest.raises(InvalidArgumentException):
            repo.find_by(None)

    @pytest.mark.asyncio
    async def test_any(self, repo):
        assert await repo.any(lambda p: p.name == "P05") is True
        assert await repo.any(lambda p: p.name == "P22") is False
        assert await repo.any(lambda p: p.name == "P22", include_deleted=True) is True

    @pytest.mark.asyncio
    async def test_count(self, repo):
        assert await repo.count() == 20
        assert await repo.count(lambda p: p.price <= 5) == 5
        assert await repo.count(include_deleted=True) == 25

    @pytest.mark.asyncio
    async def test_get_only_deleted(self, repo, session):
        rows = (await session.execute(repo.get_only_deleted())).scalars().all()
        assert sorted(p.name for p in rows) == ["P21", "P22", "P23", "P24", "P25"]

    def test_get_only_deleted_unsupported(self, session):
        with pytest.raises(UnsupportedCapabilityException):
            Repository(RepoTag, session).get_only_deleted()

    @pytest.mark.asyncio
    async def test_get_list_with_specification(self, repo):
        products = await repo.get_list(CheapProducts(4))
        assert [p.name for p in products] == ["P01", "P02", "P03"]

    @pytest.mark.asyncio
    async def test_get_single_or_default(self, repo):
        assert (await repo.get_single_or_default(Specification(lambda p: p.name == "P07"))).price == 7.0
        assert await repo.get_single_or_default(Specification(lambda p: p.name == "P23")) is None
        with pytest.raises(MultipleResultsFound):
            await repo.get_single_or_default(CheapProducts(4))

    @pytest.mark.asyncio
    async def test_get_queryable_with_includes(self, repo, session):
        query = repo.get_queryable_with_includes("category")
        product = (await session.execute(query.where(RepoProduct.name == "P01"))).scalar_one()
        assert product.category.name == "Tools"

    @pytest.mark.asyncio
    async def test_project_list(self, repo):
        names = await repo.project_list(lambda p: p.price < 3, "name")
        assert sorted(names) == ["P01", "P02"]
        rows = await repo.project_list(lambda p: p.price == 1, lambda p: (p.name, p.price))
        assert [tuple(row) for row in rows] == [("P01", 1.0)]

    @pytest.mark.asyncio
    async def test_project_first_or_default(self, repo):
        assert await repo.project_first_or_default(lambda p: p.name == "P03", "price") == 3.0
        assert await repo.project_first_or_default(lambda p: p.name == "P24", "price") is None


class TestGetPaged:
    @pytest.mark.asyncio
    async def test_second_page_of_visible_rows(self, repo):
        spec: Specification[RepoProduct] = Specification()
        spec.add_order_by("name")

        page = await repo.get_paged(spec, page=2, page_size=10)

        assert page.row_count == 20
        assert page.page_count == 2
        assert len(page.results) == 10
        assert page.results[0].name == "P11"

    @pytest.mark.asyncio
    async def test_include_deleted(self, repo):
        page = await repo.get_paged(None, page=1, page_size=10, include_deleted=True)
        assert page.row_count == 25
        assert page.page_count == 3

    @pytest.mark.asyncio
    async def test_with_projection(self, repo):
        page = await repo.get_paged(CheapProducts(100), selector="name", page=1, page_size=3)
        assert page.results == ["P01", "P02", "P03"]

    @pytest.mark.asyncio
    async def test_projection_ignores_includes(self, repo):
        spec = CheapProducts(100)
        spec.add_include("category")
        page = await repo.get_paged(spec, selector=lambda p: (p.name, p.price), page=1, page_size=2)
        assert [tuple(row) for row in page.results] == [("P01", 1.0), ("P02", 2.0)]
        assert spec.includes == ("category",)

    @pytest.mark.asyncio
    async def test_composes_with_specification_paging(self, repo):
        spec = CheapProducts(100)
        spec.apply_paging(0, 15)
        page = await repo.get_paged(spec, page=2, page_size=10)
        assert page.row_count == 15
        assert [p.name for p in page.results] == ["P11", "P12", "P13", "P14", "P15"]

    @pytest.mark.asyncio
    async def test_negative_specification_paging_is_unbounded(self, repo):
        spec = CheapProducts(100)
        spec.apply_paging(-5, -1)
        page = await repo.get_paged(spec, page=1, page_size=3)
        assert page.row_count == 20
        assert [p.name for p in page.results] == ["P01", "P02", "P03"]

    @pytest.mark.asyncio
    async def test_invalid_paging(self, repo):
        with pytest.raises(ArgumentOutOfRangeException):
            await repo.get_paged(None, page=0)
        with pytest.raises(ArgumentOutOfRangeException):
            await repo.get_paged(None, page_size=5000)


class TestWrites:
    @pytest.mark.asyncio
    async def test_add_and_save_changes(self, repo):
        product = await repo.add(RepoProduct(name="New", price=3.5))
        assert await repo.save_changes() == 1
        assert isinstance(product.id, UUID)
        assert await repo.count() == 21

    @pytest.mark.asyncio
    async def test_update(self, repo, session):
        product = await product_named(session, "P01")
        product.price = 100.0
        await repo.update(product)
        assert await repo.save_changes() == 1
        assert await repo.count(lambda p: p.price == 100.0) == 1

    @pytest.mark.asyncio
    async def test_delete(self, repo, session):
        await repo.delete(await product_named(session, "P01"))
        await repo.save_changes()
        assert await repo.count(include_deleted=True) == 24

    @pytest.mark.asyncio
    async def test_ranges(self, repo):
        products = [RepoProduct(name=f"R{i}") for i in range(5)]
        await repo.add_range(products, batch_size=2)
        assert await repo.save_changes() == 5

        await repo.delete_range(products[:2])
        assert await repo.save_changes() == 2

    @pytest.mark.asyncio
    async def test_range_rejects_bad_batch_size(self, repo):
        with pytest.raises(ArgumentOutOfRangeException):
            await repo.update_range([], batch_size=0)

    @pytest.mark.asyncio
    async def test_none_entity_rejected(self, repo):
        with pytest.raises(InvalidArgumentException):
            await repo.add(None)


class TestSoftDelete:
    @pytest.mark.asyncio
    async def test_soft_delete_flags_entity(self, repo, session):
        product = await product_named(session, "P01")
        await repo.soft_delete(product)
        await repo.save_changes()

        assert product.is_deleted is True
        assert product.deleted_at is not None
        assert product.deleted_by is None
        assert await repo.find_by_id(product.id) is None
        assert await repo.count() == 19

    @pytest.mark.asyncio
    async def test_soft_delete_with_user_stamps_audit(self, repo, session):
        products = [await product_named(session, "P01"), await product_named(session, "P02")]
        await repo.soft_delete_range(products, user_id="alice")
        assert [p.deleted_by for p in products] == ["alice", "alice"]

    @pytest.mark.asyncio
    async def test_hard_entities_are_removed(self, session):
        tags = Repository(RepoTag, session)
        tag = await session.get(RepoTag, 1)
        await tags.soft_delete(tag)
        await tags.save_changes()
        assert await tags.count() == 1

    @pytest.mark.asyncio
    async def test_restore(self, repo, session):
        product = await product_named(session, "P21")
        product.deleted_by = "bob"
        await repo.restore(product)
        await repo.save_changes()
        assert product.is_deleted is False
        assert product.deleted_at is None
        assert product.deleted_by is None
        assert await repo.count() == 21


class TestUpdatePartial:
    @pytest.mark.asyncio
    async def test_transient_copy_updates_named_properties_only(self, repo, session):
        stored = await product_named(session, "P01")
        await repo.update_partial(RepoProduct(id=stored.id, name="Renamed", price=999.0), "name")
        await repo.save_changes()

        assert stored.name == "Renamed"
        assert stored.price == 1.0

    @pytest.mark.asyncio
    async def test_callable_selector(self, repo, session):
        stored = await product_named(session, "P02")
        await repo.update_partial(RepoProduct(id=stored.id, name="x", price=42.0), lambda p: p.price)
        await repo.save_changes()
        assert (stored.name, stored.price) == ("P02", 42.0)

    @pytest.mark.asyncio
    async def test_missing_row(self, repo):
        with pytest.raises(InvalidRequestException):
            await repo.update_partial(RepoProduct(id=uuid4(), name="ghost"), "name")

    @pytest.mark.asyncio
    async def test_attached_entity(self, repo, session):
        stored = await product_named(session, "P03")
        stored.price = 7.5
        await repo.update_partial(stored, "price")
        assert await repo.save_changes() == 1


class TestExecuteInTransaction:
    @pytest.mark.asyncio
    async def test_commits(self, repo, session_factory):
        async def work() -> None:
            await repo.add(RepoProduct(name="Tx"))
            await repo.save_changes()

        await repo.execute_in_transaction(work)

        async with session_factory() as other:
            count = (await other.execute(select(func.count()).select_from(RepoProduct))).scalar_one()
        assert count == 26

    @pytest.mark.asyncio
    async def test_commits_after_a_prior_read(self, repo, session, session_factory):
        assert await repo.count() == 20
        assert session.in_transaction()

        async def work() -> None:
            await repo.add(RepoProduct(name="AfterRead"))
            await repo.save_changes()

        await repo.execute_in_transaction(work)

        assert not session.in_transaction()
        async with session_factory() as other:
            stored = (await other.execute(select(RepoProduct).where(RepoProduct.name == "AfterRead"))).scalar_one()
        assert stored.name == "AfterRead"

    @pytest.mark.asyncio
    async def test_nested_failure_keeps_outer_work(self, repo, session_factory):
        async def inner() -> None:
            await repo.add(RepoProduct(name="Inner"))
            await repo.save_changes()
            raise RuntimeError("inner failed")

        async def outer() -> None:
            await repo.add(RepoProduct(name="Outer"))
            await repo.save_changes()
            await repo.execute_in_transaction(inner)

        await repo.execute_in_transaction(outer)

        async with session_factory() as other:
            query = select(RepoProduct.name).where(RepoProduct.name.in_(["Inner", "Outer"]))
            assert list((await other.execute(query)).scalars()) == ["Outer"]

    @pytest.mark.asyncio
    async def test_failure_rolls_back_and_is_swallowed(self, repo):
        async def work() -> None:
            await repo.add(RepoProduct(name="Doomed"))
            await repo.save_changes()
            raise RuntimeError("boom")

        await repo.execute_in_transaction(work)
        assert await repo.count(lambda p: p.name == "Doomed") == 0

    @pytest.mark.asyncio
    async def test_failure_propagates_when_configured(self, session):
        repo = ProductRepository(session=session, propagate_transaction_errors=True)

        async def work() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await repo.execute_in_transaction(work)


class TestBulk:
    @pytest.mark.asyncio
    async def test_fallback_without_provider(self, session):
        diagnostics = MagicMock()
        repo = ProductRepository(session=session, logger=diagnostics)
        assert repo.bulk_mode is BulkMode.FALLBACK

        result = await repo.bulk_insert([RepoProduct(name=f"B{i}") for i in range(3)], user_id="alice")

        assert result.mode is BulkMode.FALLBACK
        assert result.affected == 3
        assert all(p.created_by == "alice" for p in result.entities)
        assert diagnostics.warning.call_args.args[0] == "bulk_config_provider_missing"
        assert await repo.count() == 23

    @pytest.mark.asyncio
    async def test_fallback_delete_with_detached_copies(self, session, session_factory):
        async with session_factory() as other:
            rows = (await other.execute(select(RepoProduct.id, RepoProduct.name).where(RepoProduct.price <= 3))).all()
        copies = [RepoProduct(id=row.id, name=row.name) for row in rows]
        repo = ProductRepository(session=session)

        result = await repo.bulk_delete(copies)

        assert result.mode is BulkMode.FALLBACK
        assert result.affected == 3
        assert await repo.count(include_deleted=True) == 22

    @pytest.mark.asyncio
    async def test_native_with_provider(self, session):
        repo = ProductRepository(session=session, bulk_config_provider=DefaultBulkConfigProvider())
        assert repo.bulk_mode is BulkMode.NATIVE

        products = [RepoProduct(name=f"N{i}", price=1.0) for i in range(3)]
        result = await repo.bulk_insert(products, user_id="alice")

        assert result.mode is BulkMode.NATIVE
        assert result.affected == 3
        assert all(isinstance(p.id, UUID) for p in products)
        assert await repo.count(lambda p: p.created_by == "alice") == 3

    @pytest.mark.asyncio
    async def test_native_update_and_delete(self, session):
        repo = ProductRepository(session=session, bulk_config_provider=DefaultBulkConfigProvider())
        products = [RepoProduct(name=f"N{i}", price=1.0) for i in range(2)]
        await repo.bulk_insert(products)

        for product in products:
            product.price = 2.0
        await repo.bulk_update(products, user_id="bob")
        assert await repo.count(lambda p: (p.price == 2.0) & (p.updated_by == "bob")) == 2

        result = await repo.bulk_delete(products)
        assert result.affected == 2
        assert await repo.count(include_deleted=True) == 25
