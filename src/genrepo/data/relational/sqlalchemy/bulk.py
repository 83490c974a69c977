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
"""Native bulk path using SQLAlchemy 2.0 ORM bulk statements.

Each chunk of ``batch_size`` entities becomes one executemany statement:

* insert — ORM bulk ``INSERT``; with ``set_output_identity`` the stored row
  (generated primary key and column defaults included) comes back through
  ``RETURNING`` and is written onto the submitted objects.
* update — ORM bulk ``UPDATE`` by primary key.
* delete — ``DELETE ... WHERE pk IN (...)``.

None of this goes through the session's unit of work, so ORM events and
per-row change tracking do not fire.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, insert, tuple_, update
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper, make_transient_to_detached

from genrepo.data.bulk import BulkOptions, chunked

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _column_keys(mapper: Mapper[Any]) -> list[str]:
    return [attr.key for attr in mapper.column_attrs]


def _insert_row(mapper: Mapper[Any], entity: Any) -> dict[str, Any]:
    # Unset values are left out so column defaults and autoincrement apply.
    row = {}
    for key in _column_keys(mapper):
        value = getattr(entity, key)
        if value is not None:
            row[key] = value
    return row


def _update_row(mapper: Mapper[Any], entity: Any) -> dict[str, Any]:
    return {key: getattr(entity, key) for key in _column_keys(mapper)}


class SqlAlchemyBulkExecutor(Generic[T]):
    """Executes homogeneous entity batches for one mapped class."""

    def __init__(self, session: AsyncSession, model: type[T]) -> None:
        self._session = session
        self._model = model
        self._mapper: Mapper[Any] = sa_inspect(model)
        self._pk_keys = [self._mapper.get_property_by_column(column).key for column in self._mapper.primary_key]

    async def insert(self, entities: Sequence[T], options: BulkOptions) -> int:
        affected = 0
        keys = _column_keys(self._mapper)
        for batch in chunked(entities, options.batch_size):
            pairs = [(entity, _insert_row(self._mapper, entity)) for entity in batch]
            if not options.preserve_insert_order:
                # Rows supplying the same columns share one executemany group.
                pairs.sort(key=lambda pair: sorted(pair[1]))
            batch = [entity for entity, _ in pairs]
            rows = [row for _, row in pairs]
            stmt = insert(self._model)
            if options.set_output_identity:
                columns = [getattr(self._model, key) for key in keys]
                stmt = stmt.returning(*columns, sort_by_parameter_order=True)
                result = await self._session.execute(stmt, rows)
                for entity, stored in zip(batch, result.all(), strict=True):
                    for key, value in zip(keys, stored, strict=True):
                        setattr(entity, key, value)
            else:
                await self._session.execute(stmt, rows)
            if options.tracking_entities:
                self._track(batch)
            affected += len(batch)
        logger.debug("Bulk inserted %d %s rows", affected, self._model.__name__)
        return affected

    async def update(self, entities: Sequence[T], options: BulkOptions) -> int:
        affected = 0
        for batch in chunked(entities, options.batch_size):
            rows = [_update_row(self._mapper, entity) for entity in batch]
            await self._session.execute(update(self._model), rows)
            affected += len(batch)
        logger.debug("Bulk updated %d %s rows", affected, self._model.__name__)
        return affected

    async def delete(self, entities: Sequence[T], options: BulkOptions) -> int:
        affected = 0
        for batch in chunked(entities, options.batch_size):
            result = await self._session.execute(delete(self._model).where(self._identity_in(batch)))
            affected += result.rowcount  # type: ignore[attr-defined]
        logger.debug("Bulk deleted %d %s rows", affected, self._model.__name__)
        return affected

    def _identity_in(self, batch: Sequence[T]) -> Any:
        if len(self._pk_keys) == 1:
            key = self._pk_keys[0]
            return getattr(self._model, key).in_([getattr(entity, key) for entity in batch])
        columns = [getattr(self._model, key) for key in self._pk_keys]
        return tuple_(*columns).in_([tuple(getattr(entity, key) for key in self._pk_keys) for entity in batch])

    def _track(self, batch: Sequence[T]) -> None:
        """Attach freshly inserted entities to the session's identity map."""
        for entity in batch:
            state = sa_inspect(entity)
            if not state.transient or any(getattr(entity, key) is None for key in self._pk_keys):
                continue
            make_transient_to_detached(entity)
            self._session.add(entity)
