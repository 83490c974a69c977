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
"""Unit of work over an ``AsyncSession``.

Staging maps onto the session's own change tracking; ``save_changes``
flushes, it does not commit. Commit boundaries belong to the caller (or to
:class:`~genrepo.data.transaction.TransactionTemplate`).

``begin()`` scopes are tracked on the session itself (``session.info``), so
every unit of work sharing a session sees the same nesting. The outermost
scope owns the session transaction, including one the session already
auto-began for an earlier read; inner scopes are SAVEPOINTs.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Generic, TypeVar

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

T = TypeVar("T")

_DEPTH_KEY = "genrepo.transaction_depth"


class SessionTransaction:
    """One ``begin()`` scope: the session transaction or a SAVEPOINT inside it.

    Ending the scope twice (e.g. rollback after a failed commit) is a no-op
    for the nesting count.
    """

    def __init__(self, session: AsyncSession, savepoint: AsyncSessionTransaction | None = None) -> None:
        self._session = session
        self._savepoint = savepoint
        self._open = True
        session.info[_DEPTH_KEY] = session.info.get(_DEPTH_KEY, 0) + 1

    @property
    def nested(self) -> bool:
        return self._savepoint is not None

    async def commit(self) -> None:
        try:
            if self._savepoint is not None:
                await self._savepoint.commit()
            else:
                await self._session.commit()
        finally:
            self._close()

    async def rollback(self) -> None:
        try:
            if self._savepoint is not None:
                if self._savepoint.is_active:
                    await self._savepoint.rollback()
            else:
                await self._session.rollback()
        finally:
            self._close()

    def _close(self) -> None:
        if not self._open:
            return
        self._open = False
        if self._savepoint is None:
            # The session transaction is gone, and every SAVEPOINT with it.
            self._session.info.pop(_DEPTH_KEY, None)
        else:
            self._session.info[_DEPTH_KEY] = max(self._session.info.get(_DEPTH_KEY, 1) - 1, 0)


class SqlAlchemyUnitOfWork(Generic[T]):
    """Change-tracking unit of work backed by SQLAlchemy's identity map."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def add(self, entity: T) -> None:
        self._session.add(entity)

    async def add_range(self, entities: Sequence[T]) -> None:
        self._session.add_all(entities)

    async def update(self, entity: T) -> None:
        """Stage *entity* for update.

        Transient instances that carry a primary key are merged onto the
        stored row; detached and persistent instances are re-attached so
        their pending attribute changes flush.
        """
        if sa_inspect(entity).transient:
            await self._session.merge(entity)
        else:
            self._session.add(entity)

    async def update_range(self, entities: Sequence[T]) -> None:
        for entity in entities:
            await self.update(entity)

    async def remove(self, entity: T) -> None:
        """Stage *entity* for deletion.

        A transient instance carrying a primary key stands in for its stored
        row; when no such row exists there is nothing to delete.
        """
        if sa_inspect(entity).transient:
            entity = await self._session.merge(entity)
            if sa_inspect(entity).pending:
                self._session.expunge(entity)
                return
        await self._session.delete(entity)

    async def remove_range(self, entities: Sequence[T]) -> None:
        for entity in entities:
            await self.remove(entity)

    def pending_changes(self) -> int:
        """Objects the next flush would insert, update or delete."""
        session = self._session
        dirty = [obj for obj in session.dirty if session.is_modified(obj)]
        return len(session.new) + len(dirty) + len(session.deleted)

    async def save_changes(self) -> int:
        """Flush staged changes; returns the number of objects written (0 if none)."""
        pending = self.pending_changes()
        if pending == 0:
            return 0
        await self._session.flush()
        return pending

    async def begin(self) -> SessionTransaction:
        """Open a transaction scope.

        The outermost scope commits or rolls back the whole session
        transaction, whether it was auto-begun by an earlier read or not.
        A scope opened inside another one is a SAVEPOINT.
        """
        if self._session.info.get(_DEPTH_KEY, 0) > 0:
            return SessionTransaction(self._session, await self._session.begin_nested())
        return SessionTransaction(self._session)
