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
"""Query facade: validate, compile, execute and describe a query.

Example::

    executor = InMemoryExecutor(rows)
    page = await run(executor, validate({"first": 10, "order_by": ["name"]}, pets), pets)
    page.meta.end_cursor   # pass as "after" to get the next page

Only the :class:`~pysift.data.ports.outbound.ExecutionPort` calls are
asynchronous; validation and compilation are pure.
"""

from __future__ import annotations

from typing import Any, TypeVar

import structlog

from pysift.data.cursor import get_cursors
from pysift.data.fields import Schema
from pysift.data.meta import ResultMeta, build_meta, invalid_meta
from pysift.data.options import QueryOptions, resolve_options
from pysift.data.page import Page
from pysift.data.plan import QueryPlan, compile_plan, compile_predicate, compile_lookback
from pysift.data.ports.outbound import ExecutionPort
from pysift.data.request import PaginationType, Request
from pysift.data.validation import validate_with
from pysift.kernel.exceptions import ValidationException

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_CURSOR_TYPES = (PaginationType.FIRST, PaginationType.LAST)


def _rows_of_page(rows: list[T], request: Request, plan: QueryPlan) -> list[T]:
    """Drop the look-ahead row of cursor fetches and restore the requested order."""
    if request.pagination_type not in _CURSOR_TYPES:
        return rows
    size = request.page_limit
    page = rows[:size] if size is not None else rows
    return list(reversed(page)) if plan.backward else page


async def _fetch(
    executor: ExecutionPort[T], request: Request, schema: Schema | None, options: QueryOptions
) -> tuple[list[T], int, QueryPlan]:
    plan = compile_plan(request, schema, options)
    rows = list(await executor.fetch(plan))
    return _rows_of_page(rows, request, plan), len(rows), plan


async def all(executor: ExecutionPort[T], request: Request, schema: Schema | None = None, **options: Any) -> list[T]:
    """Rows of the page described by *request*, in the requested order."""
    resolved = resolve_options(schema, **options)
    rows, _, _ = await _fetch(executor, request, schema, resolved)
    return rows


async def count(executor: ExecutionPort[Any], request: Request, schema: Schema | None = None, **options: Any) -> int:
    """Number of rows matching the filters of *request*, ignoring pagination."""
    resolved = resolve_options(schema, **options)
    return await executor.count(compile_predicate(request, schema, resolved))


async def _run(
    executor: ExecutionPort[T], request: Request, schema: Schema | None, options: QueryOptions
) -> Page[T]:
    rows, fetched, _ = await _fetch(executor, request, schema, options)

    if request.pagination_type in _CURSOR_TYPES:
        start_cursor, end_cursor = get_cursors(
            rows, list(request.order_by or ()), schema, options.cursor_value_func
        )
        lookback = compile_lookback(request, schema, options)
        beyond = bool(await executor.fetch(lookback)) if lookback is not None else False
        meta = build_meta(
            request,
            fetched_count=fetched,
            start_cursor=start_cursor,
            end_cursor=end_cursor,
            rows_before_boundary=beyond,
        )
    else:
        total = await executor.count(compile_predicate(request, schema, options))
        meta = build_meta(request, total_count=total)

    logger.debug(
        "query_executed",
        schema=schema.name if schema is not None else None,
        rows=len(rows),
        total_count=meta.total_count,
    )
    return Page(items=rows, meta=meta)


async def run(executor: ExecutionPort[T], request: Request, schema: Schema | None = None, **options: Any) -> Page[T]:
    """Fetch the page described by *request* together with its metadata.

    Offset and page requests issue a count query; cursor requests do not
    (``total_count`` stays ``None``) but may issue a one-row lookback to find
    out whether rows exist before the ``after`` (or past the ``before``)
    cursor.
    """
    return await _run(executor, request, schema, resolve_options(schema, **options))


async def meta(executor: ExecutionPort[Any], request: Request, schema: Schema | None = None, **options: Any) -> ResultMeta:
    """Metadata of *request* only.

    Offset and page requests need just the count query; cursor metadata
    depends on the fetched rows, so those are fetched and discarded.
    """
    resolved = resolve_options(schema, **options)
    if request.pagination_type in _CURSOR_TYPES:
        return (await _run(executor, request, schema, resolved)).meta
    total = await executor.count(compile_predicate(request, schema, resolved))
    return build_meta(request, total_count=total)


async def validate_and_run(
    executor: ExecutionPort[T], params: Any, schema: Schema | None = None, **options: Any
) -> Page[T]:
    """Validate *params* and run the query.

    Invalid parameters do not raise: the returned page is empty and its
    ``meta.errors`` lists the problems (``page.is_valid`` is ``False``).
    Conflicting pagination strategies are reported the same way.
    """
    resolved = resolve_options(schema, **options)
    try:
        request = validate_with(params, schema, resolved)
    except ValidationException as exc:
        logger.debug("query_params_rejected", errors=exc.errors)
        return Page(items=[], meta=invalid_meta(Request(), exc.errors))
    return await _run(executor, request, schema, resolved)


async def validate_and_run_or_raise(
    executor: ExecutionPort[T], params: Any, schema: Schema | None = None, **options: Any
) -> Page[T]:
    """Like :func:`validate_and_run`, raising :class:`ValidationException` instead."""
    resolved = resolve_options(schema, **options)
    request = validate_with(params, schema, resolved)
    return await _run(executor, request, schema, resolved)
