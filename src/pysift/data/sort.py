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
"""Sort directions and orderings."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from pysift.data.fields import CompositeField, CustomField, Schema
from pysift.kernel.exceptions import UnsupportedOperatorError


class Direction(StrEnum):
    """Sort direction, optionally with explicit placement of nulls."""

    ASC = "asc"
    ASC_NULLS_FIRST = "asc_nulls_first"
    ASC_NULLS_LAST = "asc_nulls_last"
    DESC = "desc"
    DESC_NULLS_FIRST = "desc_nulls_first"
    DESC_NULLS_LAST = "desc_nulls_last"

    @property
    def ascending(self) -> bool:
        return self.value.startswith("asc")

    @property
    def nulls(self) -> str | None:
        """``"first"``, ``"last"`` or ``None`` for the backend default."""
        if self.value.endswith("_nulls_first"):
            return "first"
        if self.value.endswith("_nulls_last"):
            return "last"
        return None

    def reversed(self) -> Direction:
        """The direction that enumerates rows in exactly the opposite order."""
        return _REVERSED[self]

    def toggled(self) -> Direction:
        """Flip ascending/descending, keeping the null placement."""
        return _TOGGLED[self]


_REVERSED = {
    Direction.ASC: Direction.DESC,
    Direction.DESC: Direction.ASC,
    Direction.ASC_NULLS_FIRST: Direction.DESC_NULLS_LAST,
    Direction.ASC_NULLS_LAST: Direction.DESC_NULLS_FIRST,
    Direction.DESC_NULLS_FIRST: Direction.ASC_NULLS_LAST,
    Direction.DESC_NULLS_LAST: Direction.ASC_NULLS_FIRST,
}

_TOGGLED = {
    Direction.ASC: Direction.DESC,
    Direction.DESC: Direction.ASC,
    Direction.ASC_NULLS_FIRST: Direction.DESC_NULLS_FIRST,
    Direction.ASC_NULLS_LAST: Direction.DESC_NULLS_LAST,
    Direction.DESC_NULLS_FIRST: Direction.ASC_NULLS_FIRST,
    Direction.DESC_NULLS_LAST: Direction.ASC_NULLS_LAST,
}


@dataclass(frozen=True)
class Order:
    """A single sort order: property name + direction."""

    property: str
    direction: Direction = Direction.ASC

    def __post_init__(self) -> None:
        object.__setattr__(self, "direction", Direction(self.direction))

    @staticmethod
    def asc(property: str) -> Order:
        return Order(property=property, direction=Direction.ASC)

    @staticmethod
    def desc(property: str) -> Order:
        return Order(property=property, direction=Direction.DESC)


@dataclass(frozen=True)
class Sort:
    """Ordered collection of sort orders."""

    orders: tuple[Order, ...] = ()

    @staticmethod
    def by(*properties: str) -> Sort:
        """Create ascending sort by properties."""
        return Sort(orders=tuple(Order.asc(p) for p in properties))

    @staticmethod
    def of(order_by: Sequence[str] | None, order_directions: Sequence[str] | None = None) -> Sort:
        """Pair fields with directions; missing directions default to ascending."""
        fields = list(order_by or [])
        directions = list(order_directions or [])[: len(fields)]
        directions += [Direction.ASC] * (len(fields) - len(directions))
        return Sort(orders=tuple(Order(f, Direction(d)) for f, d in zip(fields, directions, strict=True)))

    @staticmethod
    def unsorted() -> Sort:
        return Sort()

    def __iter__(self):
        return iter(self.orders)

    def __len__(self) -> int:
        return len(self.orders)

    def __bool__(self) -> bool:
        return bool(self.orders)

    @property
    def properties(self) -> list[str]:
        return [o.property for o in self.orders]

    def and_then(self, other: Sort) -> Sort:
        """Combine sorts, appending *other*'s orders after this sort's orders."""
        return Sort(orders=self.orders + other.orders)

    def reversed(self) -> Sort:
        """Same fields with every direction reversed (used for backward paging)."""
        return Sort(orders=tuple(Order(o.property, o.direction.reversed()) for o in self.orders))

    def expanded(self, schema: Schema | None) -> Sort:
        """Replace composite fields by their members, in the same direction.

        Raises:
            UnsupportedOperatorError: If a custom field is ordered on.
        """
        if schema is None:
            return self
        orders: list[Order] = []
        for order in self.orders:
            descriptor = schema.get(order.property)
            if isinstance(descriptor, CompositeField):
                orders.extend(Order(m, order.direction) for m in descriptor.members)
            elif isinstance(descriptor, CustomField):
                raise UnsupportedOperatorError(
                    f"Custom field '{order.property}' cannot be ordered on",
                    code="SORTABLE_CUSTOM",
                )
            else:
                orders.append(order)
        return Sort(orders=tuple(orders))
