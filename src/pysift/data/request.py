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
"""The validated, normalized query request and helpers to derive new ones.

A :class:`Request` is produced by :func:`pysift.data.validation.validate`
and never mutated; the helpers below return modified copies, e.g. to
build links to neighbouring pages.

Example::

    request = validate({"page": 2, "page_size": 10}, schema)
    next_request = to_next_page(request, total_pages=5)
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pysift.data.filter import Filter, FilterLike, drop_filter, get_filter, put_filter
from pysift.data.sort import Direction, Sort

if TYPE_CHECKING:
    from pysift.data.meta import ResultMeta


class PaginationType(StrEnum):
    OFFSET = "offset"
    PAGE = "page"
    FIRST = "first"
    LAST = "last"


PAGINATION_FIELDS: dict[PaginationType, tuple[str, str]] = {
    PaginationType.FIRST: ("first", "after"),
    PaginationType.LAST: ("last", "before"),
    PaginationType.PAGE: ("page", "page_size"),
    PaginationType.OFFSET: ("limit", "offset"),
}

_ALL_PAGINATION_FIELDS = tuple(name for pair in PAGINATION_FIELDS.values() for name in pair)


@dataclass(frozen=True)
class Request:
    """Validated query parameters.

    At most one pagination group is set: ``limit/offset``, ``page/page_size``,
    ``first/after`` or ``last/before``.  ``decoded_cursor`` holds the decoded
    ``after``/``before`` token.
    """

    filters: tuple[FilterLike, ...] = ()
    order_by: tuple[str, ...] | None = None
    order_directions: tuple[Direction, ...] | None = None
    limit: int | None = None
    offset: int | None = None
    page: int | None = None
    page_size: int | None = None
    first: int | None = None
    after: str | None = None
    last: int | None = None
    before: str | None = None
    decoded_cursor: dict[str, Any] | None = field(default=None, compare=False, repr=False)

    @property
    def pagination_type(self) -> PaginationType | None:
        for ptype, names in PAGINATION_FIELDS.items():
            if any(getattr(self, name) is not None for name in names):
                return ptype
        return None

    @property
    def sort(self) -> Sort:
        return Sort.of(self.order_by, self.order_directions)

    @property
    def page_limit(self) -> int | None:
        """Number of rows requested, whatever the pagination type."""
        ptype = self.pagination_type
        if ptype is PaginationType.PAGE:
            return self.page_size
        if ptype is PaginationType.FIRST:
            return self.first
        if ptype is PaginationType.LAST:
            return self.last
        return self.limit

    @property
    def effective_offset(self) -> int | None:
        """``offset``, or the offset of ``page`` for page-based requests."""
        if self.page is not None and self.page_size is not None:
            return (self.page - 1) * self.page_size
        return self.offset


def _without_pagination(request: Request, **changes: Any) -> Request:
    cleared = {name: None for name in _ALL_PAGINATION_FIELDS}
    cleared["decoded_cursor"] = None
    cleared.update(changes)
    return dataclasses.replace(request, **cleared)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def push_order(request: Request, field_name: str, directions: Sequence[str] | None = None) -> Request:
    """Make *field_name* the primary sort field.

    If it already is, its direction is toggled (or cycled through
    *directions* when given); otherwise it is prepended in ascending order
    (or ``directions[0]``) and removed from its old position.  Cursors are
    dropped and page/offset pagination restarts at the beginning.
    """
    order_by = list(request.order_by or ())
    sort = list(request.sort.orders)

    if order_by and order_by[0] == field_name:
        current = sort[0].direction
        if directions:
            cycle = [Direction(d) for d in directions]
            position = cycle.index(current) if current in cycle else -1
            new_direction = cycle[(position + 1) % len(cycle)]
        else:
            new_direction = current.toggled()
        new_sort = [(field_name, new_direction)] + [(o.property, o.direction) for o in sort[1:]]
    else:
        first_direction = Direction(directions[0]) if directions else Direction.ASC
        new_sort = [(field_name, first_direction)] + [
            (o.property, o.direction) for o in sort if o.property != field_name
        ]

    changes: dict[str, Any] = {
        "order_by": tuple(f for f, _ in new_sort),
        "order_directions": tuple(d for _, d in new_sort),
        "after": None,
        "before": None,
        "decoded_cursor": None,
    }
    if request.offset is not None:
        changes["offset"] = 0
    if request.page is not None:
        changes["page"] = 1
    return dataclasses.replace(request, **changes)


def reset_order(request: Request) -> Request:
    return dataclasses.replace(request, order_by=None, order_directions=None)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def reset_filters(request: Request) -> Request:
    return dataclasses.replace(request, filters=())


def with_filter(request: Request, flt: Filter) -> Request:
    """Replace the filters on ``flt.field`` with *flt*."""
    return dataclasses.replace(request, filters=put_filter(request.filters, flt))


def without_filter(request: Request, field_name: str) -> Request:
    return dataclasses.replace(request, filters=drop_filter(request.filters, field_name))


def filter_for(request: Request, field_name: str) -> Filter | None:
    return get_filter(request.filters, field_name)


# ---------------------------------------------------------------------------
# Page / offset navigation
# ---------------------------------------------------------------------------


def set_page(request: Request, page: int) -> Request:
    """Switch to page-based pagination at *page*, keeping the page size."""
    return _without_pagination(request, page=max(1, page), page_size=request.page_limit)


def to_next_page(request: Request, total_pages: int | None = None) -> Request:
    current = request.page or 1
    target = current + 1 if total_pages is None else min(current + 1, max(total_pages, 1))
    return set_page(request, target)


def to_previous_page(request: Request) -> Request:
    return set_page(request, (request.page or 1) - 1)


def set_offset(request: Request, offset: int) -> Request:
    """Switch to offset-based pagination at *offset*, keeping the limit."""
    return _without_pagination(request, offset=max(0, offset), limit=request.page_limit)


def to_next_offset(request: Request, total_count: int | None = None) -> Request:
    limit = request.page_limit or 0
    current = request.effective_offset or 0
    target = current + limit
    if total_count is not None and target >= total_count:
        return request
    return set_offset(request, target)


def to_previous_offset(request: Request) -> Request:
    limit = request.page_limit or 0
    return set_offset(request, (request.effective_offset or 0) - limit)


# ---------------------------------------------------------------------------
# Cursor navigation
# ---------------------------------------------------------------------------


def set_cursor(request: Request, cursor: str | None, *, forward: bool = True) -> Request:
    """Page forward from (``after``) or backward from (``before``) *cursor*."""
    size = request.page_limit
    if forward:
        return _without_pagination(request, first=size, after=cursor)
    return _without_pagination(request, last=size, before=cursor)


def to_next_cursor(meta: ResultMeta) -> Request:
    """Request for the page following the one described by *meta*."""
    return set_cursor(meta.request, meta.end_cursor, forward=True)


def to_previous_cursor(meta: ResultMeta) -> Request:
    """Request for the page preceding the one described by *meta*."""
    return set_cursor(meta.request, meta.start_cursor, forward=False)
