"""gendetect Infrastructure Layer.

This layer provides services used by the detection layer and the CLI:
- ConfigManager: Hierarchical configuration with hot-reload
- ClassificationCache: Per-file verdict cache
- Logger: Structured logging system
- ReadOnlySettingsWriter: Allow-list publication into a settings file

The watchdog-based FileWatcher lives in ``infrastructure.file_watcher`` and
is imported from there directly.
"""

from .cache_manager import CacheEntry, ClassificationCache
from .config_manager import ConfigError
from .config_manager import ConfigManager as Config
from .config_manager import ConfigSource
from .logger import Logger, LogLevel, configure_logging, get_logger
from .readonly_sync import ReadOnlySettingsWriter, SyncError, build_readonly_include

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "configure_logging",
    # Cache exports
    "CacheEntry",
    "ClassificationCache",
    # ConfigManager exports
    "ConfigSource",
    "ConfigError",
    "Config",
    # Read-only sync exports
    "ReadOnlySettingsWriter",
    "SyncError",
    "build_readonly_include",
]
