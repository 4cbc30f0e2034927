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
"""Pagination metadata of a query result.

The assembler functions are pure: they combine the validated request
with counts and cursors the caller obtained from the execution adapter.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from pysift.data.request import PaginationType, Request


@dataclass(frozen=True)
class ResultMeta:
    """Everything needed to render pagination controls for one result."""

    request: Request
    has_next_page: bool = False
    has_previous_page: bool = False
    start_cursor: str | None = None
    end_cursor: str | None = None
    current_offset: int | None = None
    current_page: int | None = None
    next_offset: int | None = None
    next_page: int | None = None
    previous_offset: int | None = None
    previous_page: int | None = None
    page_size: int | None = None
    total_count: int | None = None
    total_pages: int | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def total_pages_for(total_count: int, page_size: int | None) -> int:
    """``ceil(total_count / page_size)``; an unpaginated result is one page."""
    if total_count == 0:
        return 0
    if not page_size:
        return 1
    return math.ceil(total_count / page_size)


def current_page_for(offset: int, page_size: int, total_pages: int) -> int:
    """Page number of the first returned row, clamped to the last page.

    An offset that does not fall on a page boundary rounds up, so that
    ``offset=1, page_size=2`` is page 2.
    """
    page = math.ceil(offset / page_size) + 1
    return max(1, min(page, total_pages)) if total_pages else 1


def build_offset_meta(request: Request, total_count: int) -> ResultMeta:
    """Metadata for limit/offset, page/page_size or unpaginated requests.

    Both page-based and offset-based requests are normalized to an
    ``(offset, page_size)`` pair first, so equivalent requests produce the
    same metadata.
    """
    page_size = request.page_limit
    offset = request.effective_offset or 0
    total_pages = total_pages_for(total_count, page_size)

    if not page_size:
        return ResultMeta(
            request=request,
            current_offset=offset,
            current_page=1,
            page_size=None,
            total_count=total_count,
            total_pages=total_pages,
            has_previous_page=offset > 0,
        )

    current_page = current_page_for(offset, page_size, total_pages)

    has_previous = offset > 0
    previous_offset = max(0, offset - page_size) if has_previous else None
    previous_page = current_page - 1 if current_page > 1 else None

    has_next = offset + page_size < total_count
    next_offset = offset + page_size if has_next else None
    next_page = min(total_pages, current_page + 1) if has_next else None

    return ResultMeta(
        request=request,
        has_next_page=has_next,
        has_previous_page=has_previous,
        current_offset=offset,
        current_page=current_page,
        next_offset=next_offset,
        next_page=next_page,
        previous_offset=previous_offset,
        previous_page=previous_page,
        page_size=page_size,
        total_count=total_count,
        total_pages=total_pages,
    )


def build_cursor_meta(
    request: Request,
    fetched_count: int,
    *,
    start_cursor: str | None,
    end_cursor: str | None,
    rows_before_boundary: bool = False,
    total_count: int | None = None,
) -> ResultMeta:
    """Metadata for first/after and last/before requests.

    Args:
        fetched_count: Rows returned for a ``first + 1`` / ``last + 1`` fetch,
            before the look-ahead row was trimmed.
        rows_before_boundary: Whether rows exist on the other side of the
            supplied ``after``/``before`` cursor.  Ignored without a cursor.
    """
    forward = request.pagination_type is PaginationType.FIRST
    size = request.page_limit or 0
    more_in_direction = fetched_count > size

    if forward:
        has_next = more_in_direction
        has_previous = request.after is not None and rows_before_boundary
    else:
        has_previous = more_in_direction
        has_next = request.before is not None and rows_before_boundary

    return ResultMeta(
        request=request,
        has_next_page=has_next,
        has_previous_page=has_previous,
        start_cursor=start_cursor,
        end_cursor=end_cursor,
        page_size=size or None,
        total_count=total_count,
    )


def build_meta(
    request: Request,
    *,
    total_count: int | None = None,
    fetched_count: int = 0,
    start_cursor: str | None = None,
    end_cursor: str | None = None,
    rows_before_boundary: bool = False,
) -> ResultMeta:
    """Dispatch to the cursor or offset assembler by pagination type."""
    if request.pagination_type in (PaginationType.FIRST, PaginationType.LAST):
        return build_cursor_meta(
            request,
            fetched_count,
            start_cursor=start_cursor,
            end_cursor=end_cursor,
            rows_before_boundary=rows_before_boundary,
            total_count=total_count,
        )
    return build_offset_meta(request, total_count or 0)


def invalid_meta(request: Request, errors: dict[str, list[str]]) -> ResultMeta:
    """Metadata returned in place of a result when validation failed."""
    return ResultMeta(request=request, errors=dict(errors))
