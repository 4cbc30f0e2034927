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
"""Tests for Relay connection building."""

from __future__ import annotations

import pytest

from pysift.data import options, query
from pysift.data.adapters.memory import InMemoryExecutor
from pysift.data.cursor import decode_cursor
from pysift.data.relay import connection_from_result, edges_from_result, page_info_from_meta
from pysift.data.request import Request

ROWS = [{"id": i, "name": name} for i, name in enumerate(["ada", "bob", "cy", "dee"], start=1)]


@pytest.fixture(autouse=True)
def _reset_global_options():
    options.reset()
    yield
    options.reset()


class TestRelay:
    @pytest.mark.asyncio
    async def test_connection(self):
        page = await query.run(InMemoryExecutor(ROWS), Request(first=2, order_by=("name",)))
        connection = connection_from_result(page)

        assert [edge["node"]["id"] for edge in connection["edges"]] == [1, 2]
        assert [decode_cursor(edge["cursor"]) for edge in connection["edges"]] == [{"name": "ada"}, {"name": "bob"}]
        assert connection["page_info"] == {
            "has_previous_page": False,
            "has_next_page": True,
            "start_cursor": page.meta.start_cursor,
            "end_cursor": page.meta.end_cursor,
        }
        assert connection["edges"][0]["cursor"] == page.meta.start_cursor
        assert connection["edges"][-1]["cursor"] == page.meta.end_cursor

    @pytest.mark.asyncio
    async def test_custom_cursor_value_func(self):
        page = await query.run(InMemoryExecutor(ROWS), Request(first=1, order_by=("name",)))
        edges = edges_from_result(page, cursor_value_func=lambda row, fields: {"id": row["id"]})
        assert decode_cursor(edges[0]["cursor"]) == {"id": 1}

    @pytest.mark.asyncio
    async def test_empty_page(self):
        page = await query.run(InMemoryExecutor([]), Request(first=3, order_by=("name",)))
        assert edges_from_result(page) == []
        assert page_info_from_meta(page.meta) == {
            "has_previous_page": False,
            "has_next_page": False,
            "start_cursor": None,
            "end_cursor": None,
        }
