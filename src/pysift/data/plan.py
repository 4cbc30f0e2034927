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
"""Compilation of a validated request into an executable query plan.

A :class:`QueryPlan` is backend neutral: a predicate tree, the resolved
ordering and limit/offset.  Execution adapters translate it into their own
query language (see :mod:`pysift.data.adapters`).

Backward cursor pagination (``last``/``before``) is compiled against the
reversed ordering; the plan is flagged ``backward`` so that the caller
restores the requested order after fetching.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from pysift.data.cursor import cursor_predicate, decode_cursor
from pysift.data.fields import Schema, resolve_field
from pysift.data.filter import compile_filters
from pysift.data.options import QueryOptions, resolve_options
from pysift.data.predicate import TRUE, FieldRef, Not, Predicate
from pysift.data.request import PaginationType, Request
from pysift.data.sort import Direction, Sort

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SortKey:
    """A resolved ordering term."""

    ref: FieldRef
    direction: Direction


@dataclass(frozen=True)
class QueryPlan:
    """Backend-neutral description of one fetch."""

    predicate: Predicate = TRUE
    ordering: tuple[SortKey, ...] = ()
    limit: int | None = None
    offset: int | None = None
    backward: bool = False


def apply_order(sort: Sort, schema: Schema | None = None) -> tuple[SortKey, ...]:
    """Resolve *sort* into sort keys, expanding composite fields into their members."""
    return tuple(
        SortKey(resolve_field(schema, order.property).ref, order.direction)
        for order in sort.expanded(schema)
    )


def _cursor_side(request: Request) -> tuple[Sort, dict | None]:
    """Ordering the boundary is built on, and the pivot cursor (if any)."""
    if request.pagination_type is PaginationType.LAST:
        sort, token = request.sort.reversed(), request.before
    else:
        sort, token = request.sort, request.after
    if token is None:
        return sort, None
    return sort, request.decoded_cursor or decode_cursor(token)


def compile_predicate(request: Request, schema: Schema | None = None, options: QueryOptions | None = None) -> Predicate:
    """Filters of *request* as a predicate tree, without cursor bounds."""
    options = options or resolve_options(schema)
    return compile_filters(
        request.filters,
        schema,
        composite_policy=options.on_unsupported_composite_op,
        extra_options=dict(options.extra_opts),
    )


def compile_plan(request: Request, schema: Schema | None = None, options: QueryOptions | None = None) -> QueryPlan:
    """Compile *request* into a :class:`QueryPlan`.

    Cursor requests fetch one row more than requested so that the caller
    can tell whether more rows follow in the paging direction.
    """
    options = options or resolve_options(schema)
    predicate = compile_predicate(request, schema, options)
    ptype = request.pagination_type

    if ptype in (PaginationType.FIRST, PaginationType.LAST):
        sort, cursor = _cursor_side(request)
        if cursor is not None:
            predicate = predicate & cursor_predicate(sort, cursor, schema)
        size = request.page_limit
        plan = QueryPlan(
            predicate=predicate,
            ordering=apply_order(sort, schema),
            limit=size + 1 if size is not None else None,
            backward=ptype is PaginationType.LAST,
        )
    else:
        plan = QueryPlan(
            predicate=predicate,
            ordering=apply_order(request.sort, schema),
            limit=request.page_limit,
            offset=request.effective_offset,
        )

    logger.debug(
        "query_plan_compiled",
        schema=schema.name if schema is not None else None,
        pagination_type=str(ptype) if ptype else None,
        ordering=[(k.ref.name, str(k.direction)) for k in plan.ordering],
        limit=plan.limit,
        offset=plan.offset,
    )
    return plan


def compile_lookback(request: Request, schema: Schema | None = None, options: QueryOptions | None = None) -> QueryPlan | None:
    """Plan looking for one row on the far side of the request's cursor.

    For ``first``/``after`` a hit means a previous page exists; for
    ``last``/``before`` it means a next page exists.  ``None`` when the
    request carries no cursor.
    """
    if request.pagination_type not in (PaginationType.FIRST, PaginationType.LAST):
        return None
    sort, cursor = _cursor_side(request)
    if cursor is None:
        return None
    options = options or resolve_options(schema)
    predicate = compile_predicate(request, schema, options) & Not(cursor_predicate(sort, cursor, schema))
    return QueryPlan(predicate=predicate, limit=1)
