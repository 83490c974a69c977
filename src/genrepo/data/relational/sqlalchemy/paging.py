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
"""Count, slice and project a SELECT into a :class:`~genrepo.data.page.PagedResult`.

The count and the slice are two separate round-trips and are not wrapped in
a snapshot: a concurrent writer between them can make ``row_count`` disagree
with the materialised page. Wrap the call in a read-only transaction when
the engine supports it and that matters.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeAlias

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from genrepo.data.page import PagedResult
from genrepo.data.pagination import page_count, page_offset, validate_paging
from genrepo.data.projection import is_projection, projection_fields
from genrepo.data.relational.sqlalchemy.evaluator import resolve_attribute

ProjectionSelector: TypeAlias = Callable[[Any], Any] | str | type


def projection_columns(root: Any, selector: ProjectionSelector) -> list[Any]:
    """Columns selected by a projection.

    Accepts a ``@projection`` class, an attribute name, or a callable returning
    one column expression or a tuple/list of them.
    """
    if is_projection(selector):
        return [resolve_attribute(root, name) for name in projection_fields(selector)]  # type: ignore[arg-type]
    if isinstance(selector, str):
        return [resolve_attribute(root, selector)]
    selected = selector(root)
    if isinstance(selected, (tuple, list)):
        return list(selected)
    return [selected]


def project(query: Select[Any], root: Any, selector: ProjectionSelector | None) -> tuple[Select[Any], bool]:
    """Push a projection into *query*.

    Returns the statement and whether results should be read as scalars
    (entity queries and single-column projections) rather than rows.
    """
    if selector is None:
        return query, True
    columns = projection_columns(root, selector)
    return query.with_only_columns(*columns, maintain_column_froms=True), len(columns) == 1


async def fetch_all(session: AsyncSession, query: Select[Any], scalars: bool) -> list[Any]:
    result = await session.execute(query)
    if scalars:
        return list(result.scalars().all())
    return list(result.all())


async def fetch_first(session: AsyncSession, query: Select[Any], scalars: bool) -> Any | None:
    result = await session.execute(query.limit(1))
    if scalars:
        return result.scalars().first()
    return result.first()


async def count_rows(session: AsyncSession, query: Select[Any]) -> int:
    """Count the rows *query* would return, honouring any LIMIT/OFFSET it carries."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    result = await session.execute(count_query)
    return int(result.scalar_one())


def _slice_window(offset: int, size: int, base_skip: int, base_take: int) -> tuple[int, int] | None:
    """Compose a page window with the bounds a specification already applied.

    Returns ``(offset, limit)`` relative to the unbounded query, or ``None``
    when the page lies wholly beyond the specification's ``take``.
    """
    # Negative bounds mean "unbounded", as the evaluator treats them.
    base_skip = max(base_skip, 0)
    base_take = max(base_take, 0)
    if base_take > 0:
        remaining = base_take - offset
        if remaining <= 0:
            return None
        size = min(size, remaining)
    return base_skip + offset, size


async def to_paged_result(
    session: AsyncSession,
    query: Select[Any],
    root: Any,
    page: int,
    page_size: int,
    selector: ProjectionSelector | None = None,
    *,
    base_skip: int = 0,
    base_take: int = 0,
) -> PagedResult[Any]:
    """Execute one page of *query*.

    Args:
        session: Session the two round-trips run on.
        query: Fully filtered and ordered statement.
        root: Mapped class (or alias) the statement selects.
        page: 1-based page number.
        page_size: Rows per page, at most ``MAX_PAGE_SIZE``.
        selector: Optional projection pushed into the slice query.
        base_skip: OFFSET already present on *query* (e.g. from a specification).
        base_take: LIMIT already present on *query*; 0 when unbounded.

    Raises:
        ArgumentOutOfRangeException: *page* or *page_size* out of range; raised
            before any query runs.
    """
    validate_paging(page, page_size)

    row_count = await count_rows(session, query)

    window = _slice_window(page_offset(page, page_size), page_size, base_skip, base_take)
    results: list[Any] = []
    if window is not None:
        offset, limit = window
        sliced, scalars = project(query.offset(offset).limit(limit), root, selector)
        results = await fetch_all(session, sliced, scalars)

    return PagedResult(
        current_page=page,
        page_size=page_size,
        row_count=row_count,
        page_count=page_count(row_count, page_size),
        results=results,
    )
