"""Infrastructure utilities for configuration, logging, metrics, and persistence."""

from .config import AppConfig, ConfigError, load_config
from .logging import configure_logging
from .metrics import MetricsSink
from .persistence import JsonFileBackend, MemoryBackend, StorageBackend

__all__ = [
    "AppConfig",
    "ConfigError",
    "load_config",
    "configure_logging",
    "MetricsSink",
    "JsonFileBackend",
    "MemoryBackend",
    "StorageBackend",
]
