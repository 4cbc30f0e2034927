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
"""Layered configuration: packaged defaults, YAML/TOML files, env vars.

Query options (default limits, pagination types, invalid-parameter policy)
live under the ``pysift.query`` prefix and are bound to
:class:`QueryProperties`.
"""

from __future__ import annotations

import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal, TypeVar

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, ValidationError

T = TypeVar("T")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")

_CONFIG_PROPERTIES_ATTR = "__pysift_config_prefix__"

_ENV_PREFIX = "PYSIFT_"


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a Pydantic model as bindable to a configuration prefix.

    Usage::

        @config_properties(prefix="pysift.query")
        class QueryProperties(BaseModel):
            default_limit: int | None = None
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


class Config:
    """Hierarchical configuration with dot-notation access and env var overrides.

    Priority (highest wins):
    1. Environment variables (``PYSIFT_SECTION_KEY`` format)
    2. Configuration dict / file values
    3. Packaged defaults (``pysift-defaults.yaml``)
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Config file paths that were loaded, in merge order."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the raw configuration data."""
        return dict(self._data)

    @classmethod
    def defaults(cls) -> Config:
        """Configuration made only of the packaged defaults."""
        instance = cls(cls._load_packaged_defaults())
        instance._loaded_sources = ["pysift-defaults.yaml (defaults)"]
        return instance

    @classmethod
    def from_file(cls, path: str | Path, load_defaults: bool = True) -> Config:
        """Load configuration from a YAML or TOML file merged over the defaults.

        A missing file is not an error; only the defaults are used then.
        """
        path = Path(path)
        data: dict[str, Any] = {}
        sources: list[str] = []

        if load_defaults:
            data = cls._load_packaged_defaults()
            sources.append("pysift-defaults.yaml (defaults)")

        if path.is_file():
            data = cls._deep_merge(data, cls._load_config_data(path))
            sources.append(str(path))

        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @staticmethod
    def _load_config_data(path: Path) -> dict[str, Any]:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                return tomllib.load(f) or {}
        with open(path) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _load_packaged_defaults() -> dict[str, Any]:
        defaults_file = importlib.resources.files("pysift.resources").joinpath("pysift-defaults.yaml")
        with importlib.resources.as_file(defaults_file) as p, open(p) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base, with override values winning."""
        merged = dict(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, checking env vars first.

        ``pysift.query.max_limit`` is overridden by ``PYSIFT_QUERY_MAX_LIMIT``.
        String values containing ``${VAR}`` or ``${VAR:default}`` are resolved
        from the environment.
        """
        env_val = os.environ.get(self._env_key(key))
        if env_val is not None:
            return env_val

        current = self._walk(key)
        if current is None:
            return default
        if isinstance(current, str) and "${" in current:
            return self._resolve_placeholders(current)
        return current

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Get all values under a prefix, with env overrides for its leaf keys."""
        current = self._walk(prefix)
        section = dict(current) if isinstance(current, dict) else {}
        for name in list(section):
            env_val = os.environ.get(self._env_key(f"{prefix}.{name}"))
            if env_val is not None:
                section[name] = env_val
        return section

    def bind(self, config_cls: type[T]) -> T:
        """Bind the section named by ``@config_properties`` to a Pydantic model."""
        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        section = self.get_section(prefix)
        try:
            return config_cls.model_validate(section)  # type: ignore[attr-defined]
        except ValidationError as exc:
            raise ValueError(
                f"Configuration validation failed for '{config_cls.__name__}' (prefix='{prefix}'):\n{exc}"
            ) from exc

    @staticmethod
    def _env_key(key: str) -> str:
        base = key.removeprefix("pysift.")
        return _ENV_PREFIX + base.upper().replace(".", "_").replace("-", "_")

    def _walk(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    def _resolve_placeholders(self, value: str) -> str:
        def _replace(match: re.Match[str]) -> str:
            inner = match.group(1)
            name, _, default_val = inner.partition(":")
            env_val = os.environ.get(name)
            if env_val is not None:
                return env_val
            if ":" in inner:
                return default_val
            raise ValueError(f"Cannot resolve placeholder '${{{inner}}}': not found in environment")

        return _PLACEHOLDER_RE.sub(_replace, value)


PaginationTypeName = Literal["offset", "page", "first", "last"]


@config_properties(prefix="pysift.query")
class QueryProperties(BaseModel):
    """Global query options; schema and per-call options take precedence."""

    default_limit: int | None = Field(default=None, ge=1)
    max_limit: int | None = Field(default=None, ge=1)
    default_pagination_type: PaginationTypeName | None = None
    pagination_types: list[PaginationTypeName] | None = None
    replace_invalid_params: bool = False
    ordering: bool = True
    filtering: bool = True
    on_unsupported_composite_op: Literal["warn_and_ignore", "error"] = "warn_and_ignore"


def load_query_properties(config: Config | None = None) -> QueryProperties:
    """Bind :class:`QueryProperties` from *config* (packaged defaults if omitted)."""
    return (config or Config.defaults()).bind(QueryProperties)
