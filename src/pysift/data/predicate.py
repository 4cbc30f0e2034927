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
"""Backend-neutral predicate trees.

A compiled filter or cursor boundary is an immutable tree of the node
types below.  Nodes compose with ``&`` (AND), ``|`` (OR) and ``~`` (NOT),
the same way query specifications do, and are turned into executable
queries by an adapter (see :mod:`pysift.data.adapters`).

Example::

    age = FieldRef("age")
    adults = Compare(age, ">=", 18) & ~IsNull(FieldRef("name"))
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

CompareOp = Literal["==", "!=", "<", "<=", ">", ">="]


@dataclass(frozen=True)
class FieldRef:
    """Access to one field value, scoped to the root row or a join binding.

    Attributes:
        name: Logical field name as declared in the schema.
        source: Attribute/column name on the entity the binding points at.
        binding: Named join binding, ``None`` for the root entity.
        path: Steps from the root row to the value, used when reading a
            value off a fetched row.
        alias: Whether the value is a selected alias rather than a column.
    """

    name: str
    source: str | None = None
    binding: str | None = None
    path: tuple[str, ...] = ()
    alias: bool = False

    def __post_init__(self) -> None:
        if self.source is None:
            object.__setattr__(self, "source", self.name)
        if not self.path:
            object.__setattr__(self, "path", (self.name,))


class Predicate:
    """Base class of all predicate nodes."""

    def __and__(self, other: Predicate) -> Predicate:
        return And((self, other))

    def __or__(self, other: Predicate) -> Predicate:
        return Or((self, other))

    def __invert__(self) -> Predicate:
        return Not(self)

    def walk(self) -> Iterator[Predicate]:
        """Yield this node and all of its descendants, depth first."""
        yield self


@dataclass(frozen=True)
class Const(Predicate):
    """A constant truth value."""

    value: bool


TRUE = Const(True)
FALSE = Const(False)


@dataclass(frozen=True)
class And(Predicate):
    """Conjunction; an empty conjunction is true.

    Children are kept as given, ``TRUE`` placeholders included, so that the
    tree mirrors the order of the filters it was compiled from.
    """

    children: tuple[Predicate, ...] = field(default_factory=tuple)

    def walk(self) -> Iterator[Predicate]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class Or(Predicate):
    """Disjunction; an empty disjunction is false."""

    children: tuple[Predicate, ...] = field(default_factory=tuple)

    def walk(self) -> Iterator[Predicate]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class Not(Predicate):
    child: Predicate

    def walk(self) -> Iterator[Predicate]:
        yield self
        yield from self.child.walk()


@dataclass(frozen=True)
class Compare(Predicate):
    """``ref <op> value``."""

    ref: FieldRef
    op: CompareOp
    value: Any


@dataclass(frozen=True)
class In(Predicate):
    """``ref IN values``."""

    ref: FieldRef
    values: tuple[Any, ...]


@dataclass(frozen=True)
class IsNull(Predicate):
    ref: FieldRef


@dataclass(frozen=True)
class Like(Predicate):
    """Pattern match; ``pattern`` is already escaped with ``\\``."""

    ref: FieldRef
    pattern: str
    case_sensitive: bool = True


@dataclass(frozen=True)
class Contains(Predicate):
    """The collection stored in ``ref`` contains ``value``."""

    ref: FieldRef
    value: Any


def conjunction(predicates: list[Predicate]) -> Predicate:
    """AND-combine *predicates*; a single predicate is returned unwrapped."""
    if len(predicates) == 1:
        return predicates[0]
    return And(tuple(predicates))


def disjunction(predicates: list[Predicate]) -> Predicate:
    """OR-combine *predicates*; a single predicate is returned unwrapped."""
    if len(predicates) == 1:
        return predicates[0]
    return Or(tuple(predicates))


def field_refs(predicate: Predicate) -> list[FieldRef]:
    """All field references used in *predicate*, in tree order."""
    return [node.ref for node in predicate.walk() if hasattr(node, "ref")]
