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
"""Structural entity capabilities: soft delete and audit metadata.

Entities opt into a capability by exposing the matching attributes; no
base class is required. Detection inspects the entity *type* once and
caches the answer, so per-instance checks are a dictionary lookup.

The protocols below document the attribute shapes for type checkers.
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

SOFT_DELETE_FIELDS = ("is_deleted", "deleted_at")
CREATION_AUDIT_FIELDS = ("created_at", "created_by")
UPDATE_AUDIT_FIELDS = ("updated_at", "updated_by")
DELETION_AUDIT_FIELDS = (*SOFT_DELETE_FIELDS, "deleted_by")


@runtime_checkable
class SoftDeletable(Protocol):
    is_deleted: bool
    deleted_at: datetime | None


@runtime_checkable
class CreationAuditable(Protocol):
    created_at: datetime
    created_by: Any


@runtime_checkable
class UpdateAuditable(Protocol):
    updated_at: datetime | None
    updated_by: Any


@runtime_checkable
class DeletionAuditable(SoftDeletable, Protocol):
    deleted_by: Any


@dataclass(frozen=True)
class EntityCapabilities:
    """Which optional behaviours an entity type supports."""

    soft_deletable: bool = False
    creation_auditable: bool = False
    update_auditable: bool = False
    deletion_auditable: bool = False


def _declared_names(entity_type: type) -> frozenset[str]:
    """Attribute names visible on the class, including annotation-only fields."""
    names = set(dir(entity_type))
    for klass in inspect.getmro(entity_type):
        names.update(inspect.get_annotations(klass))
    return frozenset(names)


@functools.lru_cache(maxsize=None)
def capabilities_of(entity_type: type) -> EntityCapabilities:
    """Resolve and cache the capabilities of *entity_type*."""
    names = _declared_names(entity_type)

    def has(fields: tuple[str, ...]) -> bool:
        return all(name in names for name in fields)

    return EntityCapabilities(
        soft_deletable=has(SOFT_DELETE_FIELDS),
        creation_auditable=has(CREATION_AUDIT_FIELDS),
        update_auditable=has(UPDATE_AUDIT_FIELDS),
        deletion_auditable=has(DELETION_AUDIT_FIELDS),
    )


def capabilities_of_instance(entity: object) -> EntityCapabilities:
    return capabilities_of(type(entity))
