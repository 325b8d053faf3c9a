"""
gendetect Core: Constants and Type Definitions

This module provides system-wide constants, error codes, and configuration
keys shared by the rule, detection and infrastructure layers.
"""
from enum import IntEnum
from typing import FrozenSet, TypeAlias

# Version information
GENDETECT_VERSION = "1.0.0"


class ErrorCode(IntEnum):
    """Standardized error codes for gendetect operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, invalid configuration
    NOT_FOUND = 2  # File or resource doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Resource conflict (already running, locked)
    DEPENDENCY_ERROR = 5  # Missing external tool
    INTERNAL_ERROR = 6  # Bug in gendetect
    TIMEOUT = 7  # Operation timed out


# Type aliases for clarity
RelativePath: TypeAlias = str
Uri: TypeAlias = str

FILE_SCHEME = "file"

# Attribute values that mark a path as generated in `git check-attr` output
TRUTHY_ATTRIBUTE_VALUES: FrozenSet[str] = frozenset({"set", "true"})


class Limits:
    """Scan bounds and timeouts."""

    # Content scan bounds (0 means unbounded)
    DEFAULT_MAX_SCAN_BYTES = 1024
    DEFAULT_MAX_SCAN_LINES = 5

    # External tool time limits
    ATTRIBUTE_QUERY_TIMEOUT = 1.0  # seconds

    # Config file polling
    CONFIG_WATCH_INTERVAL = 1.0  # seconds

    # Watchdog observer join timeout on stop
    WATCHER_STOP_TIMEOUT = 5.0  # seconds


class ConfigKey:
    """Configuration key constants."""

    NAMESPACE = "autodetectGenerated"

    REGEX_PATTERNS = "regexPatterns"
    GIT_ATTRIBUTES = "gitAttributes"
    EXCLUDE_PATTERNS = "excludePatterns"
    MAX_SEARCH_CHARS = "maxSearchChars"
    MAX_SEARCH_LINES = "maxSearchLines"
    BADGE = "badge"
    COLOR = "color"

    # Logging section (outside the detection namespace)
    LOGGING = "logging"

    # Read-only allow-list key in the host settings file
    READONLY_INCLUDE = "files.readonlyInclude"


# Keys holding lists of strings
LIST_KEYS = (ConfigKey.REGEX_PATTERNS, ConfigKey.GIT_ATTRIBUTES, ConfigKey.EXCLUDE_PATTERNS)

# Keys holding non-negative scan bounds
BOUND_KEYS = (ConfigKey.MAX_SEARCH_CHARS, ConfigKey.MAX_SEARCH_LINES)

# Keys holding presentation strings
PRESENTATION_KEYS = (ConfigKey.BADGE, ConfigKey.COLOR)


DEFAULT_DETECTION_CONFIG = {
    ConfigKey.REGEX_PATTERNS: ["@generated", "DO NOT EDIT", "auto-generated", "autogenerated"],
    ConfigKey.GIT_ATTRIBUTES: ["linguist-generated"],
    ConfigKey.EXCLUDE_PATTERNS: [],
    ConfigKey.MAX_SEARCH_CHARS: Limits.DEFAULT_MAX_SCAN_BYTES,
    ConfigKey.MAX_SEARCH_LINES: Limits.DEFAULT_MAX_SCAN_LINES,
    ConfigKey.BADGE: "G",
    ConfigKey.COLOR: "gitDecoration.ignoredResourceForeground",
}

DEFAULT_CONFIG = {
    ConfigKey.NAMESPACE: DEFAULT_DETECTION_CONFIG,
    ConfigKey.LOGGING: {
        "level": "INFO",
        "file": None,
    },
}
