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
"""Generic async repository built on SQLAlchemy 2.0."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar, cast, get_args, get_origin

from sqlalchemy import Select, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from genrepo.data.auditing import apply_deletion_audit
from genrepo.data.bulk import (
    DEFAULT_BATCH_SIZE,
    BulkMode,
    BulkOperationOrchestrator,
    BulkResult,
    chunked,
)
from genrepo.data.capabilities import EntityCapabilities, capabilities_of
from genrepo.data.page import PagedResult
from genrepo.data.pagination import DEFAULT_PAGE_SIZE, validate_paging
from genrepo.data.ports.outbound import BulkConfigProvider, BulkExecutorPort, DiagnosticsLogger
from genrepo.data.relational.sqlalchemy.bulk import SqlAlchemyBulkExecutor
from genrepo.data.relational.sqlalchemy.evaluator import (
    SpecificationEvaluator,
    resolve_attribute,
    resolve_criteria,
)
from genrepo.data.relational.sqlalchemy.paging import (
    ProjectionSelector,
    count_rows,
    fetch_all,
    fetch_first,
    project,
    to_paged_result,
)
from genrepo.data.relational.sqlalchemy.soft_delete import (
    apply_soft_delete_filter,
    is_visible,
    only_deleted_filter,
)
from genrepo.data.relational.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
from genrepo.data.specification import Criteria, Selector, Specification
from genrepo.data.transaction import TransactionTemplate
from genrepo.kernel.exceptions import ArgumentOutOfRangeException, InvalidRequestException, require_not_none

T = TypeVar("T")
ID = TypeVar("ID")


class Repository(Generic[T, ID]):
    """Generic repository for SQLAlchemy entities.

    Reads return either a composable ``Select`` (``get_all``, ``find_by``,
    ``apply_specification``...) or materialised results (``find_all``,
    ``get_list``, ``get_paged``...). Soft-deleted rows are excluded unless
    ``include_deleted=True``. Writes are staged on the session and written
    by :meth:`save_changes`; committing is the caller's responsibility.

    Type Parameters:
        T: The entity type (any SQLAlchemy model).
        ID: The primary key type (e.g. UUID, int, str).

    Args:
        model: Entity class; may be omitted on ``Repository[Entity, ID]`` subclasses.
        session: Session owned by the caller's request scope.
        bulk_config_provider: Enables the native bulk path. Without it bulk
            operations stage batches on the unit of work instead.
        bulk_executor: Overrides the default :class:`SqlAlchemyBulkExecutor`.
        logger: Diagnostics logger (e.g. ``StructlogAdapter().get_logger(...)``).
        propagate_transaction_errors: Re-raise from :meth:`execute_in_transaction`
            after rollback instead of suppressing the failure.

    Usage::

        class OrderRepository(Repository[Order, UUID]):
            pass

        repo = OrderRepository(session=session)
        page = await repo.get_paged(OpenOrders(), page=2, page_size=25)
    """

    _entity_type: type | None = None
    _id_type: type | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            origin = get_origin(base)
            if origin is Repository:
                args = get_args(base)
                if args and not isinstance(args[0], TypeVar):
                    cls._entity_type = args[0]
                if len(args) > 1 and not isinstance(args[1], TypeVar):
                    cls._id_type = args[1]
                break

    def __init__(
        self,
        model: type[T] | None = None,
        session: AsyncSession | None = None,
        *,
        bulk_config_provider: BulkConfigProvider | None = None,
        bulk_executor: BulkExecutorPort[T] | None = None,
        logger: DiagnosticsLogger | None = None,
        propagate_transaction_errors: bool = False,
    ) -> None:
        resolved = model or getattr(type(self), "_entity_type", None)
        if resolved is None:
            raise TypeError(
                f"{type(self).__name__} requires either Repository[Entity, ID] declaration or explicit model argument"
            )
        if session is None:
            raise TypeError(f"{type(self).__name__} requires an AsyncSession")
        self._model: type[T] = cast(type[T], resolved)
        self._session = session
        self._capabilities = capabilities_of(self._model)
        self._unit_of_work: SqlAlchemyUnitOfWork[T] = SqlAlchemyUnitOfWork(session)
        if bulk_config_provider is not None and bulk_executor is None:
            bulk_executor = SqlAlchemyBulkExecutor(session, self._model)
        self._bulk = BulkOperationOrchestrator(
            self._unit_of_work,
            bulk_executor,
            bulk_config_provider,
            logger=logger,
        )
        self._transactions = TransactionTemplate(self._unit_of_work, propagate_errors=propagate_transaction_errors)

    @property
    def model(self) -> type[T]:
        return self._model

    @property
    def capabilities(self) -> EntityCapabilities:
        return self._capabilities

    @property
    def unit_of_work(self) -> SqlAlchemyUnitOfWork[T]:
        return self._unit_of_work

    @property
    def bulk_mode(self) -> BulkMode:
        """Whether bulk calls take the native path or the batched fallback."""
        return self._bulk.mode

    def _query(self, include_deleted: bool = False) -> Select[Any]:
        return apply_soft_delete_filter(select(self._model), self._model, include_deleted)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self, include_deleted: bool = False) -> Select[Any]:
        """Statement selecting every entity, soft-delete filter applied."""
        return self._query(include_deleted)

    async def find_all(self, include_deleted: bool = False) -> list[T]:
        return await fetch_all(self._session, self._query(include_deleted), scalars=True)

    async def find_by_id(self, id: ID, include_deleted: bool = False) -> T | None:
        """Primary-key lookup.

        The identity map may hold soft-deleted rows, so the soft-delete check
        runs on the fetched entity rather than in the query.
        """
        entity = await self._session.get(self._model, id)
        return entity if is_visible(entity, include_deleted) else None

    def find_by(self, predicate: Criteria, include_deleted: bool = False) -> Select[Any]:
        require_not_none(predicate, "predicate")
        return self._query(include_deleted).where(resolve_criteria(self._model, predicate))

    async def find_all_by(self, predicate: Criteria, include_deleted: bool = False) -> list[T]:
        return await fetch_all(self._session, self.find_by(predicate, include_deleted), scalars=True)

    async def any(self, predicate: Criteria, include_deleted: bool = False) -> bool:
        stmt = select(self.find_by(predicate, include_deleted).exists())
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def count(self, predicate: Criteria | None = None, include_deleted: bool = False) -> int:
        query = self._query(include_deleted)
        if predicate is not None:
            query = query.where(resolve_criteria(self._model, predicate))
        return await count_rows(self._session, query)

    def apply_specification(
        self,
        specification: Specification[T] | None,
        include_deleted: bool = False,
        *,
        with_includes: bool = True,
    ) -> Select[Any]:
        """Statement for *specification* with the soft-delete filter conjoined."""
        if specification is not None and not with_includes:
            specification = _without_includes(specification)
        query = SpecificationEvaluator.apply(select(self._model), self._model, specification)
        return apply_soft_delete_filter(query, self._model, include_deleted)

    async def get_paged(
        self,
        specification: Specification[T] | None,
        selector: ProjectionSelector | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        include_deleted: bool = False,
    ) -> PagedResult[Any]:
        """One page of the entities matching *specification*.

        With a *selector* the projection is pushed into the slice query and
        include directives are dropped.

        Raises:
            ArgumentOutOfRangeException: *page* < 1 or *page_size* outside
                ``[1, MAX_PAGE_SIZE]``.
        """
        validate_paging(page, page_size)
        query = self.apply_specification(specification, include_deleted, with_includes=selector is None)
        return await to_paged_result(
            self._session,
            query,
            self._model,
            page,
            page_size,
            selector,
            base_skip=specification.skip if specification is not None else 0,
            base_take=specification.take if specification is not None else 0,
        )

    def get_only_deleted(self) -> Select[Any]:
        """Statement selecting only soft-deleted entities.

        Raises:
            UnsupportedCapabilityException: the entity is not soft-deletable.
        """
        return only_deleted_filter(select(self._model), self._model)

    async def get_single_or_default(self, specification: Specification[T], include_deleted: bool = False) -> T | None:
        """The only matching entity, or ``None``.

        Raises:
            sqlalchemy.exc.MultipleResultsFound: more than one entity matched.
        """
        result = await self._session.execute(self.apply_specification(specification, include_deleted))
        return result.scalars().one_or_none()

    async def get_list(self, specification: Specification[T], include_deleted: bool = False) -> list[T]:
        return await fetch_all(self._session, self.apply_specification(specification, include_deleted), scalars=True)

    def get_queryable_with_includes(self, *includes: Selector, include_deleted: bool = False) -> Select[Any]:
        specification: Specification[T] = Specification()
        for include in includes:
            specification.add_include(include)
        return self.apply_specification(specification, include_deleted)

    async def project_list(
        self,
        predicate: Criteria | None = None,
        selector: ProjectionSelector | None = None,
        include_deleted: bool = False,
    ) -> list[Any]:
        query = self._query(include_deleted)
        if predicate is not None:
            query = query.where(resolve_criteria(self._model, predicate))
        query, scalars = project(query, self._model, selector)
        return await fetch_all(self._session, query, scalars)

    async def project_first_or_default(
        self,
        predicate: Criteria,
        selector: ProjectionSelector | None = None,
        include_deleted: bool = False,
    ) -> Any | None:
        query, scalars = project(self.find_by(predicate, include_deleted), self._model, selector)
        return await fetch_first(self._session, query, scalars)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, entity: T) -> T:
        require_not_none(entity, "entity")
        await self._unit_of_work.add(entity)
        return entity

    async def update(self, entity: T) -> None:
        require_not_none(entity, "entity")
        await self._unit_of_work.update(entity)

    async def delete(self, entity: T) -> None:
        require_not_none(entity, "entity")
        await self._unit_of_work.remove(entity)

    async def save_changes(self) -> int:
        """Flush staged changes; returns the number of objects written."""
        return await self._unit_of_work.save_changes()

    async def add_range(self, entities: Sequence[T], batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        await self._stage_in_batches(entities, batch_size, self._unit_of_work.add_range)

    async def update_range(self, entities: Sequence[T], batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        await self._stage_in_batches(entities, batch_size, self._unit_of_work.update_range)

    async def delete_range(self, entities: Sequence[T], batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        await self._stage_in_batches(entities, batch_size, self._unit_of_work.remove_range)

    async def _stage_in_batches(
        self,
        entities: Sequence[T],
        batch_size: int,
        stage: Callable[[Sequence[T]], Awaitable[None]],
    ) -> None:
        require_not_none(entities, "entities")
        if batch_size < 1:
            raise ArgumentOutOfRangeException(
                f"batch_size must be >= 1, got {batch_size}",
                code="BULK_BATCH_SIZE_OUT_OF_RANGE",
                context={"batch_size": batch_size},
            )
        for batch in chunked(entities, batch_size):
            await stage(batch)

    async def soft_delete(self, entity: T, user_id: Any = None) -> None:
        """Flag *entity* deleted, or remove it when the type is not soft-deletable.

        With *user_id* the deletion audit fields are stamped as well.
        """
        require_not_none(entity, "entity")
        if not self._capabilities.soft_deletable:
            await self._unit_of_work.remove(entity)
            return
        entity.is_deleted = True  # type: ignore[attr-defined]
        entity.deleted_at = datetime.now(UTC)  # type: ignore[attr-defined]
        if user_id is not None:
            apply_deletion_audit([entity], user_id, now=entity.deleted_at)  # type: ignore[attr-defined]
        await self._unit_of_work.update(entity)

    async def soft_delete_range(self, entities: Sequence[T], user_id: Any = None) -> None:
        require_not_none(entities, "entities")
        for entity in entities:
            await self.soft_delete(entity, user_id)

    async def restore(self, entity: T) -> None:
        """Clear the soft-delete flag and deletion metadata of *entity*."""
        require_not_none(entity, "entity")
        if not self._capabilities.soft_deletable:
            return
        entity.is_deleted = False  # type: ignore[attr-defined]
        entity.deleted_at = None  # type: ignore[attr-defined]
        if self._capabilities.deletion_auditable:
            entity.deleted_by = None  # type: ignore[attr-defined]
        await self._unit_of_work.update(entity)

    async def update_partial(self, entity: T, *properties: Selector) -> None:
        """Stage an update of *properties* only.

        A transient *entity* (a detached copy carrying its primary key) has
        just those values copied onto the stored row; attached or detached
        instances are re-attached with the attributes flagged as modified.

        Raises:
            InvalidRequestException: a transient *entity* has no stored row.
        """
        require_not_none(entity, "entity")
        keys = [prop if isinstance(prop, str) else resolve_attribute(self._model, prop).key for prop in properties]
        if sa_inspect(entity).transient:
            identity = sa_inspect(self._model).primary_key_from_instance(entity)
            stored = await self._session.get(self._model, identity[0] if len(identity) == 1 else tuple(identity))
            if stored is None:
                raise InvalidRequestException(
                    f"{self._model.__name__} with identity {identity!r} does not exist",
                    code="ENTITY_NOT_FOUND",
                    context={"entity": self._model.__name__},
                )
            for key in keys:
                setattr(stored, key, getattr(entity, key))
            entity = stored
        else:
            self._session.add(entity)
        for key in keys:
            flag_modified(entity, key)

    async def execute_in_transaction(self, operations: Callable[[], Awaitable[Any]]) -> None:
        """Run *operations* in a transaction; see :class:`TransactionTemplate`."""
        await self._transactions.run_in_transaction(operations)

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    async def bulk_insert(self, entities: Sequence[T], user_id: Any = None) -> BulkResult[T]:
        return await self._bulk.insert(entities, user_id)

    async def bulk_update(self, entities: Sequence[T], user_id: Any = None) -> BulkResult[T]:
        return await self._bulk.update(entities, user_id)

    async def bulk_delete(self, entities: Sequence[T], user_id: Any = None) -> BulkResult[T]:
        return await self._bulk.delete(entities, user_id)


def _without_includes(specification: Specification[T]) -> Specification[T]:
    copy: Specification[T] = Specification(specification.criteria)
    if specification.order_by is not None:
        copy.add_order_by(specification.order_by, specification.ascending)
    copy.apply_paging(specification.skip, specification.take)
    return copy
