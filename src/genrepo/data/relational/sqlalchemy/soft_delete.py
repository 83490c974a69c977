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
"""Soft-delete predicates for SELECT statements.

The filter is orthogonal to specification criteria: both end up as
conjoined ``WHERE`` clauses, so the order they are applied in does not
matter.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, false, true
from sqlalchemy import inspect as sa_inspect

from genrepo.data.capabilities import capabilities_of, capabilities_of_instance
from genrepo.kernel.exceptions import UnsupportedCapabilityException


def _entity_class(root: Any) -> type:
    return sa_inspect(root).mapper.class_


def apply_soft_delete_filter(query: Select[Any], root: Any, include_deleted: bool) -> Select[Any]:
    """Exclude soft-deleted rows unless *include_deleted* or the entity lacks the capability."""
    if include_deleted or not capabilities_of(_entity_class(root)).soft_deletable:
        return query
    return query.where(root.is_deleted == false())


def only_deleted_filter(query: Select[Any], root: Any) -> Select[Any]:
    """Restrict *query* to soft-deleted rows."""
    entity_class = _entity_class(root)
    if not capabilities_of(entity_class).soft_deletable:
        raise UnsupportedCapabilityException(
            f"{entity_class.__name__} doesn't support soft delete.",
            code="SOFT_DELETE_UNSUPPORTED",
            context={"entity": entity_class.__name__},
        )
    return query.where(root.is_deleted == true())


def is_visible(entity: Any, include_deleted: bool) -> bool:
    """Post-fetch guard for lookups that bypass the query filter (e.g. by primary key)."""
    if entity is None:
        return False
    if include_deleted or not capabilities_of_instance(entity).soft_deletable:
        return True
    return not entity.is_deleted
