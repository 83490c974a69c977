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
"""Audit stamping — populates actor and timestamp metadata in memory.

The three stampers operate on a batch of entities in place before they are
handed to storage. They never query the data source, and entities lacking
the relevant capability are skipped silently.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from genrepo.data.capabilities import capabilities_of_instance


def is_empty(value: Any) -> bool:
    """Whether a user identifier counts as "not set" (None or blank text)."""
    return value is None or (isinstance(value, str) and not value.strip())


def _utcnow() -> datetime:
    return datetime.now(UTC)


def apply_creation_audit(entities: Iterable[Any], user_id: Any, now: datetime | None = None) -> None:
    """Stamp ``created_at``/``created_by`` on entities not yet stamped.

    Entities that already carry a non-empty ``created_by`` are left untouched,
    so callers may pre-stamp some entities before a bulk submission.
    """
    timestamp = now or _utcnow()
    for entity in entities:
        if capabilities_of_instance(entity).creation_auditable and is_empty(entity.created_by):
            entity.created_at = timestamp
            entity.created_by = user_id


def apply_modification_audit(entities: Iterable[Any], user_id: Any, now: datetime | None = None) -> None:
    """Stamp ``updated_at``/``updated_by`` unconditionally."""
    timestamp = now or _utcnow()
    for entity in entities:
        if capabilities_of_instance(entity).update_auditable:
            entity.updated_at = timestamp
            entity.updated_by = user_id


def apply_deletion_audit(entities: Iterable[Any], user_id: Any, now: datetime | None = None) -> None:
    """Stamp ``deleted_at``/``deleted_by`` on entities already flagged deleted.

    This records who deleted the row; it does not itself flag the entity.
    """
    timestamp = now or _utcnow()
    for entity in entities:
        if capabilities_of_instance(entity).deletion_auditable and entity.is_deleted:
            entity.deleted_at = timestamp
            entity.deleted_by = user_id
