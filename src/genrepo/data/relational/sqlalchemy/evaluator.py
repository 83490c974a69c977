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
"""Compose a :class:`~genrepo.data.specification.Specification` onto a SELECT.

Steps run in a fixed order, each skipped when its field is unset:

1. criteria  → ``WHERE``
2. includes  → ``selectinload`` loader options, in the order they were added
3. order by  → ``ORDER BY`` ascending or descending
4. skip      → ``OFFSET`` when > 0
5. take      → ``LIMIT`` when > 0
"""

from __future__ import annotations

import functools
from typing import Any

from sqlalchemy import Select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import selectinload

from genrepo.data.specification import Criteria, Selector, Specification
from genrepo.kernel.exceptions import InvalidArgumentException


@functools.lru_cache(maxsize=None)
def _attribute_names(entity_class: type) -> frozenset[str]:
    """Names of every ORM-visible attribute on a mapped class."""
    mapper = sa_inspect(entity_class)
    return frozenset(key for key in mapper.all_orm_descriptors.keys() if not key.startswith("_"))


def resolve_attribute(root: Any, selector: Selector) -> Any:
    """Turn a selector into an attribute expression on *root*.

    *root* is a mapped class or an ``aliased()`` entity. String selectors must
    name a mapped attribute; callables receive *root* and return anything
    SQLAlchemy accepts as a column expression.
    """
    if isinstance(selector, str):
        entity_class = sa_inspect(root).mapper.class_
        if selector not in _attribute_names(entity_class):
            raise InvalidArgumentException(
                f"{entity_class.__name__} has no mapped attribute '{selector}'",
                code="UNKNOWN_ATTRIBUTE",
                context={"entity": entity_class.__name__, "attribute": selector},
            )
        return getattr(root, selector)
    return selector(root)


def resolve_criteria(root: Any, criteria: Criteria) -> Any:
    """Evaluate a callable criteria against *root*; expressions pass through."""
    if callable(criteria):
        return criteria(root)
    return criteria


def order_by_property_name(query: Select[Any], root: Any, property_name: str, ascending: bool = True) -> Select[Any]:
    """Order *query* by an attribute named at runtime."""
    column = resolve_attribute(root, property_name)
    return query.order_by(column.asc() if ascending else column.desc())


class SpecificationEvaluator:
    """Pure translation of a specification into SELECT clauses."""

    @staticmethod
    def apply(query: Select[Any], root: Any, specification: Specification[Any] | None) -> Select[Any]:
        """Return a new statement; neither *query* nor *specification* is modified."""
        if specification is None:
            return query

        if specification.criteria is not None:
            query = query.where(resolve_criteria(root, specification.criteria))

        for include in specification.includes:
            query = query.options(selectinload(resolve_attribute(root, include)))

        if specification.order_by is not None:
            column = resolve_attribute(root, specification.order_by)
            query = query.order_by(column.asc() if specification.ascending else column.desc())

        if specification.skip > 0:
            query = query.offset(specification.skip)

        if specification.take > 0:
            query = query.limit(specification.take)

        return query
