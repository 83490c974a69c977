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
"""Pagination limits and argument checks shared by every paging entry point."""

from __future__ import annotations

import math

from genrepo.kernel.exceptions import ArgumentOutOfRangeException

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 1000


def validate_paging(page: int, page_size: int) -> None:
    """Reject out-of-range paging arguments before any query runs."""
    if page < 1:
        raise ArgumentOutOfRangeException(
            f"page must be >= 1, got {page}",
            code="PAGING_PAGE_OUT_OF_RANGE",
            context={"page": page},
        )
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ArgumentOutOfRangeException(
            f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}",
            code="PAGING_SIZE_OUT_OF_RANGE",
            context={"page_size": page_size, "max_page_size": MAX_PAGE_SIZE},
        )


def page_offset(page: int, page_size: int) -> int:
    """Rows to skip before the first row of *page*."""
    return (page - 1) * page_size


def page_count(row_count: int, page_size: int) -> int:
    """Number of pages needed for *row_count* rows."""
    if row_count == 0:
        return 0
    return math.ceil(row_count / page_size)
