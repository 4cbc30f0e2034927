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
"""Tests for Config and QueryProperties binding."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import BaseModel

from pysift.core.config import Config, QueryProperties, config_properties, load_query_properties


class TestConfig:
    def test_get_nested_value(self):
        config = Config({"pysift": {"query": {"max_limit": 50}}})
        assert config.get("pysift.query.max_limit") == 50

    def test_get_with_default(self):
        assert Config({}).get("missing.key", "default") == "default"

    def test_load_from_yaml_file(self, tmp_path: Path):
        config_file = tmp_path / "pysift.yaml"
        config_file.write_text("pysift:\n  query:\n    default_limit: 25\n")
        config = Config.from_file(config_file)
        assert config.get("pysift.query.default_limit") == 25
        assert config.get("pysift.query.ordering") is True
        assert str(config_file) in config.loaded_sources

    def test_load_from_toml_file(self, tmp_path: Path):
        config_file = tmp_path / "pysift.toml"
        config_file.write_text("[pysift.query]\nmax_limit = 200\n")
        config = Config.from_file(config_file, load_defaults=False)
        assert config.get("pysift.query.max_limit") == 200
        assert config.loaded_sources == [str(config_file)]

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        config = Config.from_file(tmp_path / "absent.yaml")
        assert config.get("pysift.logging.format") == "console"

    def test_env_var_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PYSIFT_QUERY_MAX_LIMIT", "75")
        config = Config({"pysift": {"query": {"max_limit": 10}}})
        assert config.get("pysift.query.max_limit") == "75"

    def test_placeholder_resolution(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SIFT_FORMAT", "json")
        config = Config({"pysift": {"logging": {"format": "${SIFT_FORMAT}", "other": "${NOPE:console}"}}})
        assert config.get("pysift.logging.format") == "json"
        assert config.get("pysift.logging.other") == "console"

    def test_unresolvable_placeholder_raises(self):
        os.environ.pop("SIFT_UNSET_VAR", None)
        config = Config({"a": "${SIFT_UNSET_VAR}"})
        with pytest.raises(ValueError, match="SIFT_UNSET_VAR"):
            config.get("a")


class TestConfigProperties:
    def test_bind_to_model(self):
        @config_properties(prefix="pagination")
        class PaginationSettings(BaseModel):
            size: int = 10

        config = Config({"pagination": {"size": 30}})
        assert config.bind(PaginationSettings).size == 30

    def test_bind_requires_decorator(self):
        class Plain(BaseModel):
            size: int = 10

        with pytest.raises(ValueError, match="config_properties"):
            Config({}).bind(Plain)

    def test_bind_reports_invalid_values(self):
        config = Config({"pysift": {"query": {"max_limit": 0}}})
        with pytest.raises(ValueError, match="QueryProperties"):
            config.bind(QueryProperties)


class TestQueryProperties:
    def test_packaged_defaults(self):
        props = load_query_properties()
        assert props.default_limit is None
        assert props.max_limit is None
        assert props.replace_invalid_params is False
        assert props.ordering is True
        assert props.filtering is True
        assert props.on_unsupported_composite_op == "warn_and_ignore"

    def test_env_override_of_default(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("PYSIFT_QUERY_DEFAULT_LIMIT", "15")
        assert load_query_properties(Config.defaults()).default_limit == 15

    def test_from_config(self):
        config = Config(
            {"pysift": {"query": {"max_limit": 100, "pagination_types": ["first", "last"]}}}
        )
        props = load_query_properties(config)
        assert props.max_limit == 100
        assert props.pagination_types == ["first", "last"]
