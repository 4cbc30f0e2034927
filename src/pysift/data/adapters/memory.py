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
"""In-memory execution adapter.

Evaluates predicate trees over a list of mappings or objects with SQL
three-valued logic: a comparison involving ``NULL`` is unknown
(``None``), and only rows whose predicate is ``True`` are selected.
Ordering follows PostgreSQL's defaults: nulls sort as the largest value
unless the direction places them explicitly.

Suitable for tests, prototyping, and small in-process collections.
"""

from __future__ import annotations

import functools
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Generic, TypeVar

from pysift.data.cursor import read_path
from pysift.data.plan import QueryPlan, SortKey
from pysift.data.predicate import (
    And,
    Compare,
    Const,
    Contains,
    FieldRef,
    In,
    IsNull,
    Like,
    Not,
    Or,
    Predicate,
)

T = TypeVar("T")

Truth = bool | None

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}


@functools.lru_cache(maxsize=256)
def like_regex(pattern: str, case_sensitive: bool = True, escape_char: str = "\\") -> re.Pattern[str]:
    """Translate a SQL ``LIKE`` pattern into an anchored regular expression."""
    parts: list[str] = []
    chars = iter(pattern)
    for ch in chars:
        if ch == escape_char:
            parts.append(re.escape(next(chars, escape_char)))
        elif ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile("".join(parts), flags)


class InMemoryExecutor(Generic[T]):
    """Execution adapter over an in-process collection.

    Args:
        rows: The collection to query.
        aliases: Functions computing alias field values from a row; alias
            fields without one are read from the row by name.
    """

    def __init__(self, rows: Iterable[T], aliases: Mapping[str, Callable[[T], Any]] | None = None) -> None:
        self._rows: list[T] = list(rows)
        self._aliases = dict(aliases or {})

    # ------------------------------------------------------------------
    # ExecutionPort
    # ------------------------------------------------------------------

    async def fetch(self, plan: QueryPlan) -> list[T]:
        rows = [row for row in self._rows if self.evaluate(plan.predicate, row) is True]
        if plan.ordering:
            rows.sort(key=functools.cmp_to_key(lambda a, b: self._compare_rows(a, b, plan.ordering)))
        start = plan.offset or 0
        end = start + plan.limit if plan.limit is not None else None
        return rows[start:end]

    async def count(self, predicate: Predicate) -> int:
        return sum(1 for row in self._rows if self.evaluate(predicate, row) is True)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def value_of(self, row: T, ref: FieldRef) -> Any:
        if ref.alias:
            func = self._aliases.get(ref.name)
            return func(row) if func is not None else read_path(row, (ref.name,))
        if ref.binding is not None:
            return read_path(row, ref.path)
        return read_path(row, (ref.source or ref.name,))

    def evaluate(self, predicate: Predicate, row: T) -> Truth:
        """Truth value of *predicate* for *row*: ``True``, ``False`` or unknown."""
        if isinstance(predicate, Const):
            return predicate.value
        if isinstance(predicate, And):
            results = [self.evaluate(child, row) for child in predicate.children]
            if False in results:
                return False
            return None if None in results else True
        if isinstance(predicate, Or):
            results = [self.evaluate(child, row) for child in predicate.children]
            if True in results:
                return True
            return None if None in results else False
        if isinstance(predicate, Not):
            result = self.evaluate(predicate.child, row)
            return None if result is None else not result
        if isinstance(predicate, IsNull):
            return self.value_of(row, predicate.ref) is None

        value = self.value_of(row, predicate.ref)  # type: ignore[attr-defined]
        if value is None:
            return None
        if isinstance(predicate, Compare):
            return _COMPARATORS[predicate.op](value, predicate.value)
        if isinstance(predicate, In):
            if value in predicate.values:
                return True
            return None if None in predicate.values else False
        if isinstance(predicate, Like):
            return like_regex(predicate.pattern, predicate.case_sensitive).fullmatch(str(value)) is not None
        if isinstance(predicate, Contains):
            return predicate.value in value
        raise TypeError(f"Unsupported predicate node: {type(predicate).__name__}")

    def _compare_rows(self, a: T, b: T, ordering: tuple[SortKey, ...]) -> int:
        for key in ordering:
            va, vb = self.value_of(a, key.ref), self.value_of(b, key.ref)
            if va is None and vb is None:
                continue
            nulls = key.direction.nulls or ("last" if key.direction.ascending else "first")
            if va is None:
                return -1 if nulls == "first" else 1
            if vb is None:
                return 1 if nulls == "first" else -1
            if va == vb:
                continue
            result = -1 if va < vb else 1
            return result if key.direction.ascending else -result
        return 0
