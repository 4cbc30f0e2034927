"""pysift logging — logging port and structlog adapter."""

from __future__ import annotations

from pysift.core.config import Config
from pysift.logging.port import LoggingPort
from pysift.logging.structlog_adapter import StructlogAdapter


def configure_logging(config: Config | None = None, adapter: LoggingPort | None = None) -> LoggingPort:
    """Configure how pysift logs, from *config* or the packaged defaults.

    Uses a :class:`StructlogAdapter` unless another *adapter* is given.
    """
    adapter = adapter if adapter is not None else StructlogAdapter()
    adapter.configure(config if config is not None else Config.defaults())
    return adapter


__all__ = ["LoggingPort", "StructlogAdapter", "configure_logging"]
