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
"""Outbound ports: the storage collaborators the core depends on."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from genrepo.data.bulk import BulkOptions

T = TypeVar("T")


@runtime_checkable
class TransactionPort(Protocol):
    """A storage-level transaction begun by a unit of work."""

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


@runtime_checkable
class UnitOfWorkPort(Protocol[T]):
    """Change-tracking unit of work: stage changes, then persist them together."""

    async def add(self, entity: T) -> None: ...

    async def add_range(self, entities: Sequence[T]) -> None: ...

    async def update(self, entity: T) -> None: ...

    async def update_range(self, entities: Sequence[T]) -> None: ...

    async def remove(self, entity: T) -> None: ...

    async def remove_range(self, entities: Sequence[T]) -> None: ...

    async def save_changes(self) -> int: ...

    async def begin(self) -> TransactionPort: ...


@runtime_checkable
class BulkExecutorPort(Protocol[T]):
    """Native bulk path that bypasses per-row change tracking."""

    async def insert(self, entities: Sequence[T], options: BulkOptions) -> int: ...

    async def update(self, entities: Sequence[T], options: BulkOptions) -> int: ...

    async def delete(self, entities: Sequence[T], options: BulkOptions) -> int: ...


@runtime_checkable
class BulkConfigProvider(Protocol):
    """Supplies the options used by the native bulk path."""

    def get_options(self) -> BulkOptions: ...


@runtime_checkable
class DiagnosticsLogger(Protocol):
    """Structured logger receiving warning-level diagnostics."""

    def warning(self, event: str, **kwargs: Any) -> Any: ...
