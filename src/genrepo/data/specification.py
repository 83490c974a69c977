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
"""Declarative filter / include / order / paging descriptor for one entity type.

A :class:`Specification` records *what* a query should do; an evaluator for
the active adapter decides *how*. Subclass it to give a reusable query
shape a name::

    class ActiveCustomersByName(Specification[Customer]):
        def __init__(self, page: int, size: int) -> None:
            super().__init__(lambda c: c.active.is_(True))
            self.add_include("orders")
            self.add_order_by(lambda c: c.name)
            self.apply_paging((page - 1) * size, size)

Selectors are a tagged variant: either a callable receiving the entity
class (``lambda c: c.name``) or the attribute name as a string
(``"name"``). String selectors are resolved against the entity's mapped
attributes when the specification is evaluated.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeAlias, TypeVar

T = TypeVar("T")

Selector: TypeAlias = Callable[[Any], Any] | str
Criteria: TypeAlias = Callable[[Any], Any] | Any


class Specification(Generic[T]):
    """Mutable builder describing a query over entities of type ``T``.

    Mutators replace (criteria, ordering, paging) or append (includes) and
    never validate cross-field consistency. Once handed to an evaluator the
    instance is treated as read-only; do not share one instance between
    concurrent calls that need different paging or ordering.
    """

    def __init__(self, criteria: Criteria | None = None) -> None:
        self._criteria: Criteria | None = criteria
        self._includes: list[Selector] = []
        self._order_by: Selector | None = None
        self._ascending: bool = True
        self._skip: int = 0
        self._take: int = 0

    @property
    def criteria(self) -> Criteria | None:
        return self._criteria

    @property
    def includes(self) -> tuple[Selector, ...]:
        """Eager-load selectors in the order they were added."""
        return tuple(self._includes)

    @property
    def order_by(self) -> Selector | None:
        return self._order_by

    @property
    def ascending(self) -> bool:
        return self._ascending

    @property
    def skip(self) -> int:
        return self._skip

    @property
    def take(self) -> int:
        """Maximum rows to return; 0 means unbounded."""
        return self._take

    def add_criteria(self, criteria: Criteria) -> Specification[T]:
        """Replace the filter predicate."""
        self._criteria = criteria
        return self

    def add_order_by(self, order_by: Selector, ascending: bool = True) -> Specification[T]:
        """Replace the sort key; only one ordering is active at a time."""
        self._order_by = order_by
        self._ascending = ascending
        return self

    def apply_paging(self, skip: int, take: int) -> Specification[T]:
        self._skip = skip
        self._take = take
        return self

    def add_include(self, include: Selector) -> Specification[T]:
        """Append an eager-load directive for a related entity."""
        self._includes.append(include)
        return self

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(criteria={self._criteria!r}, includes={self._includes!r}, "
            f"order_by={self._order_by!r}, ascending={self._ascending}, skip={self._skip}, take={self._take})"
        )
