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
"""Tests for the pagination metadata assembler."""

from __future__ import annotations

import pytest

from pysift.data.meta import build_meta, current_page_for, invalid_meta, total_pages_for
from pysift.data.request import Request


class TestOffsetMeta:
    def test_offset_not_on_page_boundary_rounds_up(self):
        meta = build_meta(Request(limit=2, offset=1), total_count=6)
        assert meta.current_page == 2
        assert meta.previous_page == 1
        assert meta.next_page == 3
        assert meta.total_pages == 3
        assert meta.has_previous_page is True
        assert meta.has_next_page is True
        assert meta.previous_offset == 0
        assert meta.next_offset == 3

    def test_last_partial_page(self):
        meta = build_meta(Request(limit=2, offset=5), total_count=6)
        assert meta.current_page == 3
        assert meta.has_next_page is False
        assert meta.next_page is None
        assert meta.next_offset is None
        assert meta.previous_page == 2

    def test_first_page(self):
        meta = build_meta(Request(limit=10, offset=0), total_count=25)
        assert meta.current_page == 1
        assert meta.has_previous_page is False
        assert meta.previous_offset is None
        assert meta.previous_page is None
        assert meta.next_offset == 10
        assert meta.total_pages == 3

    def test_exact_last_page(self):
        meta = build_meta(Request(limit=10, offset=20), total_count=30)
        assert meta.has_next_page is False
        assert meta.current_page == 3

    def test_page_request_matches_offset_request(self):
        by_page = build_meta(Request(page=2, page_size=10), total_count=35)
        by_offset = build_meta(Request(limit=10, offset=10), total_count=35)
        for attr in ("current_page", "current_offset", "next_page", "previous_page", "total_pages", "has_next_page"):
            assert getattr(by_page, attr) == getattr(by_offset, attr)

    def test_offset_past_the_end_clamps_page(self):
        meta = build_meta(Request(limit=10, offset=100), total_count=30)
        assert meta.current_page == 3
        assert meta.has_next_page is False
        assert meta.has_previous_page is True

    def test_empty_result(self):
        meta = build_meta(Request(limit=10, offset=0), total_count=0)
        assert meta.total_pages == 0
        assert meta.current_page == 1
        assert meta.has_next_page is False

    def test_unpaginated(self):
        meta = build_meta(Request(), total_count=4)
        assert meta.total_pages == 1
        assert meta.page_size is None
        assert meta.has_next_page is False

    @pytest.mark.parametrize(("count", "size", "pages"), [(0, 5, 0), (5, 5, 1), (6, 5, 2), (3, None, 1)])
    def test_total_pages(self, count, size, pages):
        assert total_pages_for(count, size) == pages

    def test_current_page_for(self):
        assert current_page_for(0, 10, 5) == 1
        assert current_page_for(10, 10, 5) == 2
        assert current_page_for(11, 10, 5) == 3


class TestCursorMeta:
    def test_forward_has_next_from_look_ahead(self):
        meta = build_meta(Request(first=2, order_by=("id",)), fetched_count=3, start_cursor="s", end_cursor="e")
        assert meta.has_next_page is True
        assert meta.has_previous_page is False
        assert (meta.start_cursor, meta.end_cursor) == ("s", "e")
        assert meta.total_count is None
        assert meta.page_size == 2

    def test_forward_with_after_uses_lookback(self):
        request = Request(first=2, after="tok", order_by=("id",))
        assert build_meta(request, fetched_count=2, rows_before_boundary=True).has_previous_page is True
        assert build_meta(request, fetched_count=2, rows_before_boundary=False).has_previous_page is False
        assert build_meta(request, fetched_count=2).has_next_page is False

    def test_backward(self):
        request = Request(last=2, before="tok", order_by=("id",))
        meta = build_meta(request, fetched_count=3, rows_before_boundary=True)
        assert meta.has_previous_page is True
        assert meta.has_next_page is True

    def test_backward_without_cursor_has_no_next(self):
        meta = build_meta(Request(last=2, order_by=("id",)), fetched_count=1, rows_before_boundary=True)
        assert meta.has_next_page is False
        assert meta.has_previous_page is False


class TestInvalidMeta:
    def test_errors(self):
        meta = invalid_meta(Request(), {"limit": ["must be greater than 0"]})
        assert meta.is_valid is False
        assert meta.errors == {"limit": ["must be greater than 0"]}
