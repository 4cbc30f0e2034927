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
"""Operator library: turns ``(field, operator, value)`` into predicate trees.

Operators are dispatched through a table of builder functions keyed by
:class:`~pysift.data.enums.Operator`.  Each builder receives the
:class:`~pysift.data.predicate.FieldRef` of a resolved field plus the
(already coerced) filter value and returns a predicate fragment.
Composite fields expand into OR/AND combinations of their members;
custom fields never reach this module.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, Literal

import structlog

from pysift.data.enums import (
    COMPARISON_OPERATORS,
    EQUALITY_OPERATORS,
    MEMBERSHIP_OPERATORS,
    MULTI_TERM_OPERATORS,
    Operator,
    StorageType,
)
from pysift.data.fields import CompositeField, CustomField, FieldDescriptor, Schema, resolve_field
from pysift.data.predicate import (
    FALSE,
    TRUE,
    Compare,
    Contains,
    FieldRef,
    In,
    IsNull,
    Like,
    Not,
    Or,
    Predicate,
    conjunction,
    disjunction,
)
from pysift.kernel.exceptions import UnsupportedOperatorError

logger = structlog.get_logger(__name__)

CompositePolicy = Literal["warn_and_ignore", "error"]

ESCAPE_CHAR = "\\"

_LIKE_SPECIAL = re.compile(r"([\\%_])")


# ---------------------------------------------------------------------------
# Wildcards
# ---------------------------------------------------------------------------


def escape_like(value: str, escape_char: str = ESCAPE_CHAR) -> str:
    """Escape ``%``, ``_`` and the escape character itself."""
    return _LIKE_SPECIAL.sub(lambda m: escape_char + m.group(1), value)


def add_wildcard(value: str, escape_char: str = ESCAPE_CHAR) -> str:
    """Escape *value* and wrap it for a substring match.

    >>> add_wildcard("bor%t")
    '%bor\\\\%t%'
    """
    return f"%{escape_like(value, escape_char)}%"


def split_search_text(value: str | list[str] | tuple[str, ...]) -> list[str]:
    """Split a search text on whitespace; lists are used as given."""
    if isinstance(value, str):
        return value.split()
    return [str(term) for term in value]


def parse_empty_flag(value: Any) -> bool | None:
    """Interpret the value of an ``empty``/``not_empty`` filter.

    Returns ``None`` for anything that is not a boolean or its string form,
    meaning the filter is ignored.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


# ---------------------------------------------------------------------------
# Builders (one per operator)
# ---------------------------------------------------------------------------

Builder = Callable[[FieldRef, Any, StorageType], Predicate]


def _compare(op: Literal["==", "!=", "<", "<=", ">", ">="]) -> Builder:
    return lambda ref, value, _storage: Compare(ref, op, value)


def _in(ref: FieldRef, value: Any, _storage: StorageType) -> Predicate:
    return In(ref, tuple(value))


def _not_in(ref: FieldRef, value: Any, _storage: StorageType) -> Predicate:
    # NULL NOT IN (...) is unknown in SQL; a None marker in the list makes
    # the exclusion of null rows explicit instead of matching nothing.
    values = tuple(value)
    reject_nil = None in values
    predicate: Predicate = Not(In(ref, tuple(v for v in values if v is not None)))
    if reject_nil:
        predicate = predicate & Not(IsNull(ref))
    return predicate


def _contains(ref: FieldRef, value: Any, _storage: StorageType) -> Predicate:
    return Contains(ref, value)


def _not_contains(ref: FieldRef, value: Any, _storage: StorageType) -> Predicate:
    return Not(Contains(ref, value))


def _like(case_sensitive: bool, negate: bool) -> Builder:
    def build(ref: FieldRef, value: Any, _storage: StorageType) -> Predicate:
        terms = value if isinstance(value, (list, tuple)) else [value]
        predicate = disjunction([Like(ref, add_wildcard(str(t)), case_sensitive) for t in terms])
        return Not(predicate) if negate else predicate

    return build


def _multi_term(case_sensitive: bool, combinator: Literal["and", "or"]) -> Builder:
    def build(ref: FieldRef, value: Any, _storage: StorageType) -> Predicate:
        fragments = [Like(ref, add_wildcard(t), case_sensitive) for t in split_search_text(value)]
        if not fragments:
            return TRUE if combinator == "and" else FALSE
        return conjunction(fragments) if combinator == "and" else disjunction(fragments)

    return build


def empty_predicate(ref: FieldRef, storage: StorageType) -> Predicate:
    """Null for scalars; null or empty collection for arrays and maps."""
    if storage is StorageType.ARRAY:
        return Or((IsNull(ref), Compare(ref, "==", [])))
    if storage is StorageType.MAP:
        return Or((IsNull(ref), Compare(ref, "==", {})))
    return IsNull(ref)


def _empty(negate: bool) -> Builder:
    def build(ref: FieldRef, value: Any, storage: StorageType) -> Predicate:
        flag = parse_empty_flag(value)
        if flag is None:
            return TRUE
        want_empty = flag != negate
        predicate = empty_predicate(ref, storage)
        return predicate if want_empty else Not(predicate)

    return build


OPERATOR_BUILDERS: dict[Operator, Builder] = {
    Operator.EQ: _compare("=="),
    Operator.NE: _compare("!="),
    Operator.LT: _compare("<"),
    Operator.LE: _compare("<="),
    Operator.GT: _compare(">"),
    Operator.GE: _compare(">="),
    Operator.IN: _in,
    Operator.NOT_IN: _not_in,
    Operator.CONTAINS: _contains,
    Operator.NOT_CONTAINS: _not_contains,
    Operator.LIKE: _like(case_sensitive=True, negate=False),
    Operator.NOT_LIKE: _like(case_sensitive=True, negate=True),
    Operator.ILIKE: _like(case_sensitive=False, negate=False),
    Operator.NOT_ILIKE: _like(case_sensitive=False, negate=True),
    Operator.MATCH: _like(case_sensitive=False, negate=False),
    Operator.LIKE_AND: _multi_term(case_sensitive=True, combinator="and"),
    Operator.LIKE_OR: _multi_term(case_sensitive=True, combinator="or"),
    Operator.ILIKE_AND: _multi_term(case_sensitive=False, combinator="and"),
    Operator.ILIKE_OR: _multi_term(case_sensitive=False, combinator="or"),
    Operator.EMPTY: _empty(negate=False),
    Operator.NOT_EMPTY: _empty(negate=True),
}

_MULTI_TERM_SINGLE: dict[Operator, Operator] = {
    Operator.LIKE_AND: Operator.LIKE,
    Operator.LIKE_OR: Operator.LIKE,
    Operator.ILIKE_AND: Operator.ILIKE,
    Operator.ILIKE_OR: Operator.ILIKE,
}

_COMPOSITE_UNSUPPORTED = COMPARISON_OPERATORS | EQUALITY_OPERATORS | MEMBERSHIP_OPERATORS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_predicate(
    descriptor: FieldDescriptor,
    op: Operator | str,
    value: Any,
    *,
    schema: Schema | None = None,
    composite_policy: CompositePolicy = "warn_and_ignore",
) -> Predicate:
    """Build the predicate for one filter on a resolved field.

    Args:
        descriptor: The resolved field (not a custom field).
        op: Operator tag.
        value: Filter value, already coerced to the field's storage type.
        schema: Needed to resolve composite members.
        composite_policy: What to do with operators composite fields cannot
            express: ``warn_and_ignore`` reduces the filter to ``TRUE``,
            ``error`` raises :class:`UnsupportedOperatorError`.
    """
    op = Operator(op)
    if isinstance(descriptor, CustomField):
        raise UnsupportedOperatorError(
            f"Custom field '{descriptor.name}' is filtered by its own filter function",
            code="CUSTOM_FIELD",
        )
    if isinstance(descriptor, CompositeField):
        return _build_composite(descriptor, op, value, schema, composite_policy)
    return OPERATOR_BUILDERS[op](descriptor.ref, value, descriptor.storage_type)


def _build_composite(
    descriptor: CompositeField,
    op: Operator,
    value: Any,
    schema: Schema | None,
    policy: CompositePolicy,
) -> Predicate:
    if op in _COMPOSITE_UNSUPPORTED:
        if policy == "error":
            raise UnsupportedOperatorError(
                f"Operator '{op}' is not supported for composite field '{descriptor.name}'",
                code="UNSUPPORTED_COMPOSITE_OPERATOR",
                context={"field": descriptor.name, "op": str(op)},
            )
        logger.warning("composite_operator_ignored", field=descriptor.name, op=str(op))
        return TRUE

    members = [resolve_field(schema, name) for name in descriptor.members]

    if op in MULTI_TERM_OPERATORS:
        single = _MULTI_TERM_SINGLE[op]
        per_term = [
            disjunction([build_predicate(m, single, term, schema=schema) for m in members])
            for term in split_search_text(value)
        ]
        if not per_term:
            return TRUE if op in (Operator.LIKE_AND, Operator.ILIKE_AND) else FALSE
        if op in (Operator.LIKE_AND, Operator.ILIKE_AND):
            return conjunction(per_term)
        return disjunction(per_term)

    fragments = [build_predicate(m, op, value, schema=schema) for m in members]
    if op is Operator.EMPTY:
        return conjunction(fragments)
    # substring operators and not_empty: any member may match
    return disjunction(fragments)
