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
"""Relay-style connections built from query results.

Turns a :class:`~pysift.data.page.Page` into the ``edges``/``pageInfo``
shape of a Relay cursor connection, using snake_case
keys::

    {
        "edges": [{"cursor": "...", "node": row}, ...],
        "page_info": {
            "has_previous_page": False,
            "has_next_page": True,
            "start_cursor": "...",
            "end_cursor": "...",
        },
    }
"""

from __future__ import annotations

from typing import Any

from pysift.data.cursor import CursorValueFunc, encode_cursor, get_cursor_value
from pysift.data.fields import Schema
from pysift.data.meta import ResultMeta
from pysift.data.page import Page


def page_info_from_meta(meta: ResultMeta) -> dict[str, Any]:
    return {
        "has_previous_page": meta.has_previous_page,
        "has_next_page": meta.has_next_page,
        "start_cursor": meta.start_cursor,
        "end_cursor": meta.end_cursor,
    }


def edges_from_result(
    page: Page[Any],
    schema: Schema | None = None,
    cursor_value_func: CursorValueFunc | None = None,
) -> list[dict[str, Any]]:
    """One ``{"cursor", "node"}`` edge per row, ordered like the rows."""
    order_by = list(page.meta.request.order_by or ())
    func = cursor_value_func or (lambda row, fields: get_cursor_value(row, fields, schema))
    return [{"cursor": encode_cursor(func(row, order_by)), "node": row} for row in page.items]


def connection_from_result(
    page: Page[Any],
    schema: Schema | None = None,
    cursor_value_func: CursorValueFunc | None = None,
) -> dict[str, Any]:
    """Relay connection (``edges`` + ``page_info``) for *page*."""
    return {
        "edges": edges_from_result(page, schema, cursor_value_func),
        "page_info": page_info_from_meta(page.meta),
    }
