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
"""Bulk insert / update / delete orchestration.

:class:`BulkOperationOrchestrator` picks one of two execution paths per call:

* **native** — a :class:`~genrepo.data.ports.outbound.BulkConfigProvider` is
  configured: options are resolved and the entity batch goes straight to the
  :class:`~genrepo.data.ports.outbound.BulkExecutorPort`.
* **fallback** — no provider: a warning goes to the diagnostics logger and
  entities are staged on the unit of work in consecutive chunks, followed by
  a single ``save_changes()``.

When a ``user_id`` is supplied the matching audit stamper runs first on both
paths. Storage errors are never caught here.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import math
from collections.abc import Awaitable, Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from genrepo.config.properties.data import BulkProperties
from genrepo.core.config import Config
from genrepo.data.auditing import apply_creation_audit, apply_deletion_audit, apply_modification_audit
from genrepo.data.ports.outbound import BulkConfigProvider, BulkExecutorPort, DiagnosticsLogger, UnitOfWorkPort
from genrepo.kernel.exceptions import ArgumentOutOfRangeException, require_not_none

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


@dataclass(frozen=True)
class BulkOptions:
    """Options handed to the native bulk path."""

    batch_size: int = DEFAULT_BATCH_SIZE
    set_output_identity: bool = True
    preserve_insert_order: bool = True
    tracking_entities: bool = False

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ArgumentOutOfRangeException(
                f"batch_size must be >= 1, got {self.batch_size}",
                code="BULK_BATCH_SIZE_OUT_OF_RANGE",
                context={"batch_size": self.batch_size},
            )

    def with_changes(self, **changes: Any) -> BulkOptions:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


class DefaultBulkConfigProvider:
    """Provider returning the library defaults."""

    def get_options(self) -> BulkOptions:
        return BulkOptions()


class PropertiesBulkConfigProvider:
    """Provider backed by :class:`BulkProperties` bound from configuration."""

    def __init__(self, properties: BulkProperties) -> None:
        self._properties = properties

    def get_options(self) -> BulkOptions:
        props = self._properties
        return BulkOptions(
            batch_size=props.batch_size,
            set_output_identity=props.set_output_identity,
            preserve_insert_order=props.preserve_insert_order,
            tracking_entities=props.tracking_entities,
        )


def bulk_config_provider_from(config: Config) -> BulkConfigProvider | None:
    """Build a provider from ``genrepo.data.bulk``; ``None`` when disabled."""
    properties = config.bind(BulkProperties)
    if not properties.enabled:
        return None
    return PropertiesBulkConfigProvider(properties)


class BulkMode(enum.Enum):
    """Execution path taken by a bulk call."""

    NATIVE = "native"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class BulkResult(Generic[T]):
    """Outcome of one bulk call.

    Attributes:
        entities: The submitted entities (identities written back on native insert).
        mode: Which execution path ran.
        batches: Number of chunks submitted.
        affected: Rows reported by the storage engine.
    """

    entities: list[T] = field(default_factory=list)
    mode: BulkMode = BulkMode.FALLBACK
    batches: int = 0
    affected: int = 0


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive chunks of at most *size* items, in input order."""
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class BulkOperationOrchestrator(Generic[T]):
    """Routes bulk mutations to the native path or the batched fallback.

    Args:
        unit_of_work: Change-tracking unit of work used by the fallback path.
        executor: Native bulk executor; required for the native path.
        config_provider: Source of :class:`BulkOptions`. When absent the
            fallback path is the default path, not an error.
        logger: Optional diagnostics logger receiving fallback warnings.
        fallback_batch_size: Chunk size used when staging on the unit of work.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWorkPort[T],
        executor: BulkExecutorPort[T] | None = None,
        config_provider: BulkConfigProvider | None = None,
        *,
        logger: DiagnosticsLogger | None = None,
        fallback_batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if fallback_batch_size < 1:
            raise ArgumentOutOfRangeException(
                f"fallback_batch_size must be >= 1, got {fallback_batch_size}",
                code="BULK_BATCH_SIZE_OUT_OF_RANGE",
                context={"batch_size": fallback_batch_size},
            )
        self._unit_of_work = unit_of_work
        self._executor = executor
        self._config_provider = config_provider
        self._logger = logger
        self._fallback_batch_size = fallback_batch_size

    @property
    def mode(self) -> BulkMode:
        """The path the next call will take."""
        if self._config_provider is not None and self._executor is not None:
            return BulkMode.NATIVE
        return BulkMode.FALLBACK

    async def insert(self, entities: Sequence[T], user_id: Any = None) -> BulkResult[T]:
        return await self._execute(
            "insert",
            entities,
            user_id,
            stamp=apply_creation_audit,
            native=lambda executor: executor.insert,
            stage=self._unit_of_work.add_range,
        )

    async def update(self, entities: Sequence[T], user_id: Any = None) -> BulkResult[T]:
        return await self._execute(
            "update",
            entities,
            user_id,
            stamp=apply_modification_audit,
            native=lambda executor: executor.update,
            stage=self._unit_of_work.update_range,
        )

    async def delete(self, entities: Sequence[T], user_id: Any = None) -> BulkResult[T]:
        return await self._execute(
            "delete",
            entities,
            user_id,
            stamp=apply_deletion_audit,
            native=lambda executor: executor.delete,
            stage=self._unit_of_work.remove_range,
        )

    async def _execute(
        self,
        operation: str,
        entities: Sequence[T],
        user_id: Any,
        *,
        stamp: Callable[[Sequence[T], Any], None],
        native: Callable[[BulkExecutorPort[T]], Callable[[Sequence[T], BulkOptions], Awaitable[int]]],
        stage: Callable[[Sequence[T]], Awaitable[None]],
    ) -> BulkResult[T]:
        require_not_none(entities, "entities")
        batch = entities if isinstance(entities, list) else list(entities)

        provider, executor = self._config_provider, self._executor
        if provider is not None and executor is not None:
            options = provider.get_options()
            if operation == "delete":
                options = options.with_changes(set_output_identity=False)
            if user_id is not None:
                stamp(batch, user_id)
            affected = await native(executor)(batch, options)
            return BulkResult(
                entities=batch,
                mode=BulkMode.NATIVE,
                batches=math.ceil(len(batch) / options.batch_size),
                affected=affected,
            )

        if self._logger is not None:
            self._logger.warning(
                "bulk_config_provider_missing",
                operation=operation,
                fallback="unit_of_work",
                batch_size=self._fallback_batch_size,
                count=len(batch),
            )
        if user_id is not None:
            stamp(batch, user_id)

        batches = 0
        for chunk in chunked(batch, self._fallback_batch_size):
            await stage(chunk)
            batches += 1
        logger.debug("Staged %d entities in %d batches for bulk %s", len(batch), batches, operation)

        affected = await self._unit_of_work.save_changes()
        return BulkResult(entities=batch, mode=BulkMode.FALLBACK, batches=batches, affected=affected)
