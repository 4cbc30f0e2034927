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
"""Result type of a paginated query."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

from pysift.data.meta import ResultMeta

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Page(Generic[T]):
    """The rows of one page together with its pagination metadata.

    Attributes:
        items: The rows on this page, in the requested order.
        meta: Counts, cursors and neighbouring page numbers.
    """

    items: list[T]
    meta: ResultMeta

    @property
    def total_count(self) -> int | None:
        """Rows matching the filters, ``None`` for cursor pagination."""
        return self.meta.total_count

    @property
    def total_pages(self) -> int | None:
        return self.meta.total_pages

    @property
    def has_next(self) -> bool:
        """Whether there is a next page."""
        return self.meta.has_next_page

    @property
    def has_previous(self) -> bool:
        """Whether there is a previous page."""
        return self.meta.has_previous_page

    @property
    def is_valid(self) -> bool:
        return self.meta.is_valid

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def map(self, func: Callable[[T], U]) -> Page[U]:
        """Transform items using a mapping function, preserving the metadata."""
        return Page(items=[func(item) for item in self.items], meta=self.meta)
