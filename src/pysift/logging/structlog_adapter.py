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
"""StructlogAdapter — default LoggingPort implementation using structlog.

pysift is a library, so the adapter leaves the application's root logger
alone: it installs one handler on the ``pysift`` logger and renders the
events of ``pysift.*`` modules through structlog's ``ProcessorFormatter``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

from pysift.core.config import Config

NAMESPACE = "pysift"


class StructlogAdapter:
    """Logging adapter backed by structlog, configured from ``pysift.logging``.

    Args:
        cache_loggers: Passed to structlog as ``cache_logger_on_first_use``.
        stream: Where the ``pysift`` handler writes; ``sys.stdout`` by default.
    """

    def __init__(self, cache_loggers: bool = True, stream: TextIO | None = None) -> None:
        self._cache_loggers = cache_loggers
        self._stream = stream
        self._handler: logging.Handler | None = None
        self._root_level: str = "INFO"
        self._format: str = "console"
        self._module_levels: dict[str, str] = {}

    def configure(self, config: Config) -> None:
        """Read ``pysift.logging.level`` / ``pysift.logging.format`` and apply them.

        ``level.root`` is the level of the whole ``pysift`` namespace; any
        other key under ``level`` names a module, e.g. ``pysift.data.validation``.
        """
        level_section = dict(config.get_section("pysift.logging.level"))
        self._root_level = str(level_section.pop("root", "INFO")).upper()
        self._module_levels = {k: str(v).upper() for k, v in level_section.items()}
        self._format = str(config.get("pysift.logging.format", "console")).lower()

        self._setup_structlog()
        self._install_handler()
        for module, level in self._module_levels.items():
            self.set_level(module, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        """Set the log level for a specific stdlib logger."""
        logging.getLogger(name).setLevel(getattr(logging, level.upper(), logging.INFO))

    def _shared_processors(self) -> list[structlog.types.Processor]:
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
        ]

    def _setup_structlog(self) -> None:
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *self._shared_processors(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=self._cache_loggers,
        )

    def _install_handler(self) -> None:
        renderer: structlog.types.Processor
        if self._format == "json":
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer()

        handler = logging.StreamHandler(self._stream or sys.stdout)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
                foreign_pre_chain=self._shared_processors(),
            )
        )

        logger = logging.getLogger(NAMESPACE)
        if self._handler is not None:
            logger.removeHandler(self._handler)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, self._root_level, logging.INFO))
        self._handler = handler
