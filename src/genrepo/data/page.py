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
"""Envelope type for one page of query results."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class PagedResult(Generic[T]):
    """One bounded slice of a larger result set plus total-count metadata.

    Attributes:
        current_page: Page number that was requested (1-based).
        page_size: Maximum rows per page.
        row_count: Total rows matching the query, not the rows on this page.
        page_count: ``ceil(row_count / page_size)``; 0 when nothing matched.
        results: Rows on this page, in query order.
    """

    current_page: int
    page_size: int
    row_count: int
    page_count: int
    results: list[T] = field(default_factory=list)

    @property
    def first_row_on_page(self) -> int:
        """1-based index of the first row on this page."""
        return (self.current_page - 1) * self.page_size + 1

    @property
    def last_row_on_page(self) -> int:
        """1-based index of the last row on this page."""
        return min(self.current_page * self.page_size, self.row_count)

    @property
    def has_next(self) -> bool:
        """Whether there is a next page."""
        return self.current_page < self.page_count

    @property
    def has_previous(self) -> bool:
        """Whether there is a previous page."""
        return self.current_page > 1

    def map(self, func: Callable[[T], U]) -> PagedResult[U]:
        """Transform results using a mapping function, preserving paging metadata."""
        return PagedResult(
            current_page=self.current_page,
            page_size=self.page_size,
            row_count=self.row_count,
            page_count=self.page_count,
            results=[func(item) for item in self.results],
        )
