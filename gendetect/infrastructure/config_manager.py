#!/usr/bin/env python3
"""Hierarchical configuration manager with hot-reload for gendetect.

This module provides configuration management with:
- 7-level precedence hierarchy
- Hot-reload without restart
- Environment variable mapping for the detection keys
- File watching for changes
- Thread-safe operations
- Deep merge of nested configs

Example:
    >>> config = ConfigManager()
    >>> config.load_file(".gendetect.yaml", ConfigSource.PROJECT_CONFIG)
    >>> config.section("autodetectGenerated")["maxSearchLines"]
    5
    >>> config.add_watcher(on_config_change)
    >>> config.watch_file(".gendetect.yaml")
"""

import copy
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import yaml

from gendetect.core.constants import DEFAULT_CONFIG, ConfigKey, ErrorCode, Limits
from gendetect.infrastructure.logger import get_logger

logger = get_logger("gendetect.config")

SYSTEM_CONFIG_PATH = "/etc/gendetect/config.yaml"
USER_CONFIG_PATH = "~/.config/gendetect/config.yaml"
PROJECT_CONFIG_NAME = ".gendetect.yaml"

ENV_PREFIX = "GENDETECT_"

# Environment variable suffix -> dotted config key
ENV_KEYS = {
    "REGEX_PATTERNS": f"{ConfigKey.NAMESPACE}.{ConfigKey.REGEX_PATTERNS}",
    "GIT_ATTRIBUTES": f"{ConfigKey.NAMESPACE}.{ConfigKey.GIT_ATTRIBUTES}",
    "EXCLUDE_PATTERNS": f"{ConfigKey.NAMESPACE}.{ConfigKey.EXCLUDE_PATTERNS}",
    "MAX_SEARCH_CHARS": f"{ConfigKey.NAMESPACE}.{ConfigKey.MAX_SEARCH_CHARS}",
    "MAX_SEARCH_LINES": f"{ConfigKey.NAMESPACE}.{ConfigKey.MAX_SEARCH_LINES}",
    "BADGE": f"{ConfigKey.NAMESPACE}.{ConfigKey.BADGE}",
    "COLOR": f"{ConfigKey.NAMESPACE}.{ConfigKey.COLOR}",
    "LOG_LEVEL": f"{ConfigKey.LOGGING}.level",
    "LOG_FILE": f"{ConfigKey.LOGGING}.file",
}

# Environment variables whose values are comma-separated lists
ENV_LIST_KEYS = {"REGEX_PATTERNS", "GIT_ATTRIBUTES", "EXCLUDE_PATTERNS"}


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    SYSTEM_CONFIG = 2
    USER_CONFIG = 3
    EXPLICIT_CONFIG = 4  # --config FILE
    PROJECT_CONFIG = 5
    ENVIRONMENT = 6
    CLI_ARGS = 7
    RUNTIME = 8  # Highest precedence


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigManager:
    """Thread-safe hierarchical configuration manager.

    Manages configuration from multiple sources with precedence:
    1. Compiled defaults (lowest)
    2. System config (/etc/gendetect/config.yaml)
    3. User config (~/.config/gendetect/config.yaml)
    4. Explicit config file (--config)
    5. Project config (<root>/.gendetect.yaml)
    6. Environment variables (GENDETECT_*)
    7. CLI arguments
    8. Runtime updates (highest)

    Supports hot-reload and file watching. Watchers receive the merged
    configuration whenever a watched file changes or a value is set.
    """

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_file: Optional config file to load at explicit-config level
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._watchers: List[Callable[[Dict[str, Any]], None]] = []
        self._watch_thread: Optional[threading.Thread] = None
        self._watch_files: Set[str] = set()
        self._file_mtimes: Dict[str, float] = {}
        self._file_sources: Dict[str, ConfigSource] = {}
        self._stop_watching = threading.Event()

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(DEFAULT_CONFIG)

        if config_file:
            self.load_file(config_file, ConfigSource.EXPLICIT_CONFIG)

        self._load_environment()

    def load_file(self, file_path: str, source: ConfigSource = ConfigSource.USER_CONFIG) -> None:
        """Load configuration from YAML file.

        An empty file is accepted as an empty configuration.

        Args:
            file_path: Path to YAML config file
            source: Configuration source level

        Raises:
            ConfigError: If file cannot be loaded or parsed
        """
        path = Path(file_path).expanduser().resolve()

        if not path.exists():
            raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.INVALID_INPUT)
        except OSError as e:
            raise ConfigError(f"Error loading config {file_path}: {e}", ErrorCode.PERMISSION_DENIED)

        if config_data is None:
            config_data = {}

        if not isinstance(config_data, dict):
            raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)

        with self._lock:
            self._config[source] = config_data
            self._file_mtimes[str(path)] = path.stat().st_mtime
            self._file_sources[str(path)] = source

        logger.debug("Loaded config file", path=str(path), source=source.name)

    def load_standard_locations(self, roots: Iterable[str] = ()) -> List[str]:
        """Load system, user and project config files that exist.

        Project files are looked up as ``<root>/.gendetect.yaml``; the first
        root that has one wins.

        Returns:
            Paths of the files that were loaded
        """
        loaded = []
        candidates = [
            (SYSTEM_CONFIG_PATH, ConfigSource.SYSTEM_CONFIG),
            (USER_CONFIG_PATH, ConfigSource.USER_CONFIG),
        ]
        for root in roots:
            candidates.append((os.path.join(root, PROJECT_CONFIG_NAME), ConfigSource.PROJECT_CONFIG))

        seen_sources = set()
        for file_path, source in candidates:
            if source in seen_sources:
                continue
            if not Path(file_path).expanduser().is_file():
                continue
            try:
                self.load_file(file_path, source)
            except ConfigError as e:
                logger.warning("Skipping unreadable config file", path=file_path, error=e.message)
                continue
            seen_sources.add(source)
            loaded.append(str(Path(file_path).expanduser().resolve()))

        return loaded

    def get_loaded_files(self) -> List[str]:
        """Resolved paths of every file loaded so far, in load order."""
        with self._lock:
            return list(self._file_sources)

    def load_dict(self, config_data: Dict[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Load configuration from dictionary.

        Args:
            config_data: Configuration dictionary
            source: Configuration source level
        """
        with self._lock:
            self._config[source] = copy.deepcopy(config_data)

    def _load_environment(self) -> None:
        """Load configuration from environment variables.

        Recognized variables are listed in ENV_KEYS, for example
        GENDETECT_MAX_SEARCH_LINES=10 or GENDETECT_GIT_ATTRIBUTES=generated,linguist-generated.
        """
        env_config: Dict[str, Any] = {}

        for suffix, dotted_key in ENV_KEYS.items():
            raw = os.environ.get(ENV_PREFIX + suffix)
            if raw is None:
                continue

            if suffix in ENV_LIST_KEYS:
                value: Any = [item.strip() for item in raw.split(",") if item.strip()]
            else:
                value = self._parse_env_value(raw)

            self._set_nested(env_config, dotted_key, value)

        if env_config:
            with self._lock:
                self._config[ConfigSource.ENVIRONMENT] = env_config

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value.

        Returns:
            Parsed value (int, float, bool, or str)
        """
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Dot-separated key path (e.g., "autodetectGenerated.maxSearchLines")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return value

            return default

    def section(self, namespace: str = ConfigKey.NAMESPACE) -> Dict[str, Any]:
        """Get the merged mapping stored under a top-level namespace."""
        value = self.get_all().get(namespace)
        if not isinstance(value, dict):
            return {}
        return value

    def _get_nested(self, config: Dict[str, Any], key: str) -> Optional[Any]:
        """Get value from nested dictionary using dot notation."""
        parts = key.split(".")
        current: Any = config

        for part in parts:
            if not isinstance(current, dict):
                return None
            if part not in current:
                return None
            current = current[part]

        return current

    @staticmethod
    def _set_nested(config: Dict[str, Any], key: str, value: Any) -> None:
        parts = key.split(".")
        current = config
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set configuration value and notify watchers.

        Args:
            key: Dot-separated key path
            value: Value to set
            source: Configuration source level
        """
        with self._lock:
            if source not in self._config:
                self._config[source] = {}
            self._set_nested(self._config[source], key, value)

        self._notify_watchers()

    def get_all(self) -> Dict[str, Any]:
        """Get merged configuration from all sources.

        Returns:
            Merged configuration dictionary
        """
        with self._lock:
            merged: Dict[str, Any] = {}

            for source in sorted(self._config.keys(), key=lambda s: s.value):
                merged = self._deep_merge(merged, self._config[source])

            return copy.deepcopy(merged)

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries. Lists are replaced, not concatenated."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def reload(self) -> None:
        """Reload all file-based configurations and notify watchers."""
        with self._lock:
            files_to_reload = list(self._file_sources.items())

        for file_path, source in files_to_reload:
            try:
                self.load_file(file_path, source)
            except ConfigError as e:
                logger.warning("Config reload failed, keeping previous values", path=file_path, error=e.message)

        self._notify_watchers()

    def watch_file(self, file_path: str, interval: float = Limits.CONFIG_WATCH_INTERVAL) -> None:
        """Watch configuration file for changes.

        Args:
            file_path: Path to file to watch
            interval: Check interval in seconds
        """
        path = Path(file_path).expanduser().resolve()
        file_str = str(path)

        with self._lock:
            self._watch_files.add(file_str)

            if self._watch_thread is None or not self._watch_thread.is_alive():
                self._stop_watching.clear()
                self._watch_thread = threading.Thread(
                    target=self._watch_loop,
                    args=(interval,),
                    daemon=True,
                    name="gendetect-config-watch",
                )
                self._watch_thread.start()

    def _watch_loop(self, interval: float) -> None:
        """File watching loop."""
        while not self._stop_watching.wait(interval):
            self.check_watched_files()

    def check_watched_files(self) -> bool:
        """Reload any watched file whose mtime moved forward.

        Returns:
            True if at least one file was reloaded
        """
        with self._lock:
            files = list(self._watch_files)

        changed = False
        for file_path in files:
            path = Path(file_path)
            try:
                if not path.exists():
                    continue
                mtime = path.stat().st_mtime
                with self._lock:
                    old_mtime = self._file_mtimes.get(file_path, 0)
                    source = self._file_sources.get(file_path, ConfigSource.USER_CONFIG)
                if mtime > old_mtime:
                    self.load_file(file_path, source)
                    changed = True
            except (ConfigError, OSError) as e:
                logger.warning("Failed to reload watched config", path=file_path, error=str(e))

        if changed:
            self._notify_watchers()
        return changed

    def stop_watching(self) -> None:
        """Stop file watching."""
        self._stop_watching.set()
        if self._watch_thread:
            self._watch_thread.join(timeout=2.0)

    def add_watcher(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Add configuration change watcher.

        Args:
            callback: Function called with merged config on changes
        """
        with self._lock:
            self._watchers.append(callback)

    def remove_watcher(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Remove configuration change watcher."""
        with self._lock:
            if callback in self._watchers:
                self._watchers.remove(callback)

    def _notify_watchers(self) -> None:
        """Notify all watchers of configuration change."""
        merged = self.get_all()

        with self._lock:
            watchers = list(self._watchers)

        for watcher in watchers:
            try:
                watcher(merged)
            except Exception as e:
                logger.exception("Config watcher failed", e)

    def clear(self, source: Optional[ConfigSource] = None) -> None:
        """Clear configuration.

        Args:
            source: Specific source to clear, or None for all except defaults
        """
        with self._lock:
            if source:
                if source in self._config and source != ConfigSource.COMPILED_DEFAULTS:
                    del self._config[source]
            else:
                sources_to_clear = [
                    s for s in self._config.keys() if s != ConfigSource.COMPILED_DEFAULTS
                ]
                for s in sources_to_clear:
                    del self._config[s]

