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
"""Filters, filter combinators and the predicate compiler.

:func:`compile_filters` walks validated filters in order, resolves every
field through the schema, and AND-combines the resulting fragments.
Filters that resolve to "ignore" contribute ``TRUE`` so that the
compiled tree keeps one child per filter.

Example::

    filters = [Filter("name", "ilike", "rex"), Filter("age", ">=", 3)]
    predicate = compile_filters(filters, pet_schema)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from pysift.data.enums import Operator
from pysift.data.fields import CustomField, Schema, resolve_field
from pysift.data.operators import CompositePolicy, build_predicate
from pysift.data.predicate import TRUE, And, Or, Predicate
from pysift.kernel.exceptions import InvalidFilterError


@dataclass(frozen=True)
class Filter:
    """One filter condition: ``field <op> value``."""

    field: str
    op: Operator = Operator.EQ
    value: Any = None

    def __post_init__(self) -> None:
        if not self.field or self.op is None:
            raise InvalidFilterError(
                "A filter needs both a field and an operator",
                code="INVALID_FILTER",
                context={"field": self.field, "op": self.op},
            )
        object.__setattr__(self, "op", Operator(self.op))

    @property
    def ignored(self) -> bool:
        """A filter without a value is treated as absent."""
        return self.value is None


@dataclass(frozen=True)
class Combinator:
    """Boolean group of filters and nested combinators."""

    type: Literal["and", "or"] = "and"
    filters: tuple[Union[Filter, "Combinator"], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(self.filters))


FilterLike = Union[Filter, Combinator]


# ---------------------------------------------------------------------------
# Predicate compiler
# ---------------------------------------------------------------------------


def compile_filter(
    flt: FilterLike,
    schema: Schema | None = None,
    *,
    composite_policy: CompositePolicy = "warn_and_ignore",
    extra_options: dict[str, Any] | None = None,
) -> Predicate:
    """Compile a single filter or combinator."""
    if isinstance(flt, Combinator):
        children = tuple(
            compile_filter(f, schema, composite_policy=composite_policy, extra_options=extra_options)
            for f in flt.filters
        )
        return And(children) if flt.type == "and" else Or(children)

    if flt.ignored:
        return TRUE

    descriptor = resolve_field(schema, flt.field)
    if isinstance(descriptor, CustomField):
        options = {**(extra_options or {}), **descriptor.filter_options}
        return descriptor.filter_func(flt, options)
    return build_predicate(descriptor, flt.op, flt.value, schema=schema, composite_policy=composite_policy)


def compile_filters(
    filters: Iterable[FilterLike],
    schema: Schema | None = None,
    *,
    composite_policy: CompositePolicy = "warn_and_ignore",
    extra_options: dict[str, Any] | None = None,
) -> Predicate:
    """AND-combine all *filters* in order; an empty list compiles to ``TRUE``."""
    return And(
        tuple(
            compile_filter(f, schema, composite_policy=composite_policy, extra_options=extra_options)
            for f in filters
        )
    )


# ---------------------------------------------------------------------------
# Helpers on filter lists
# ---------------------------------------------------------------------------


def get_filter(filters: Sequence[FilterLike], field_name: str) -> Filter | None:
    """First top-level filter on *field_name*."""
    return next((f for f in filters if isinstance(f, Filter) and f.field == field_name), None)


def get_filters(filters: Sequence[FilterLike], field_name: str) -> list[Filter]:
    """All top-level filters on *field_name*."""
    return [f for f in filters if isinstance(f, Filter) and f.field == field_name]


def put_filter(filters: Sequence[FilterLike], new: Filter) -> tuple[FilterLike, ...]:
    """Replace the filters on ``new.field`` with *new* (appended if absent)."""
    kept: list[FilterLike] = []
    placed = False
    for f in filters:
        if isinstance(f, Filter) and f.field == new.field:
            if not placed:
                kept.append(new)
                placed = True
            continue
        kept.append(f)
    if not placed:
        kept.append(new)
    return tuple(kept)


def drop_filter(filters: Sequence[FilterLike], field_name: str) -> tuple[FilterLike, ...]:
    """Remove all top-level filters on *field_name*."""
    return tuple(f for f in filters if not (isinstance(f, Filter) and f.field == field_name))


def drop_filters(filters: Sequence[FilterLike], field_names: Iterable[str]) -> tuple[FilterLike, ...]:
    names = set(field_names)
    return tuple(f for f in filters if not (isinstance(f, Filter) and f.field in names))
