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
"""pysift data — filter, sort and pagination compiler.

Raw parameters are validated into a :class:`Request` against a
:class:`Schema`, compiled into a backend-neutral :class:`QueryPlan`, run by
an :class:`ExecutionPort` adapter and returned as a :class:`Page` carrying
:class:`ResultMeta`.

Adapters:
    - ``pysift.data.adapters.memory`` — in-process collections.
    - ``pysift.data.adapters.sqlalchemy`` — SQLAlchemy async ORM.
"""

from pysift.data import query
from pysift.data.adapters.memory import InMemoryExecutor
from pysift.data.cursor import (
    InvalidCursorError,
    cursor_predicate,
    decode_cursor,
    encode_cursor,
    get_cursor_value,
    get_cursors,
)
from pysift.data.enums import FieldKind, Operator, StorageType
from pysift.data.fields import Schema, derive_schema, schema_of
from pysift.data.filter import Combinator, Filter, compile_filters
from pysift.data.meta import ResultMeta, build_meta
from pysift.data.options import QueryOptions, configure, resolve_options
from pysift.data.page import Page
from pysift.data.plan import QueryPlan, SortKey, apply_order, compile_plan
from pysift.data.ports.outbound import ExecutionPort
from pysift.data.predicate import FALSE, TRUE, Predicate
from pysift.data.relay import connection_from_result, edges_from_result, page_info_from_meta
from pysift.data.request import PaginationType, Request
from pysift.data.sort import Direction, Order, Sort
from pysift.data.validation import QueryParams, validate

__all__ = [
    "Combinator",
    "Direction",
    "ExecutionPort",
    "FALSE",
    "FieldKind",
    "Filter",
    "InMemoryExecutor",
    "InvalidCursorError",
    "Operator",
    "Order",
    "Page",
    "PaginationType",
    "Predicate",
    "QueryOptions",
    "QueryParams",
    "QueryPlan",
    "Request",
    "ResultMeta",
    "Schema",
    "Sort",
    "SortKey",
    "StorageType",
    "TRUE",
    "apply_order",
    "build_meta",
    "compile_filters",
    "compile_plan",
    "configure",
    "connection_from_result",
    "cursor_predicate",
    "decode_cursor",
    "derive_schema",
    "edges_from_result",
    "encode_cursor",
    "get_cursor_value",
    "get_cursors",
    "page_info_from_meta",
    "query",
    "resolve_options",
    "schema_of",
    "validate",
]
