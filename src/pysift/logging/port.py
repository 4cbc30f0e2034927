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
"""LoggingPort — how pysift's log events reach the application.

pysift modules log through ``structlog.get_logger(__name__)`` and never
configure logging themselves.  An adapter implementing this port decides
where the events go and at which level each ``pysift.*`` module logs.

Events emitted:

* ``composite_operator_ignored``, ``composite_cursor_field_ignored``
  (warning) when a composite field cannot take part in a filter or a
  cursor boundary.
* ``invalid_param_dropped``, ``invalid_param_replaced``,
  ``invalid_filter_dropped``, ``invalid_order_fields_dropped`` (debug)
  under ``replace_invalid_params``.
* ``query_plan_compiled``, ``query_executed``, ``query_params_rejected``
  (debug) from ``pysift.data.plan`` and ``pysift.data.query``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pysift.core.config import Config


@runtime_checkable
class LoggingPort(Protocol):
    """Route pysift log events and set per-module levels."""

    def configure(self, config: Config) -> None:
        """Apply the ``pysift.logging`` section of *config*."""
        ...

    def get_logger(self, name: str) -> Any: ...

    def set_level(self, name: str, level: str) -> None:
        """Set the level of one ``pysift.*`` logger, e.g. ``pysift.data.validation``."""
        ...
