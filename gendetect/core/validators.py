"""
gendetect Core: Input Validators.

Strict validation of the detection configuration section. Runtime rule
loading is lenient (bad entries are dropped with a diagnostic); these
validators back the ``gendetect validate`` command, which reports the first
problem as an error instead.
"""
import re
from typing import Any, Dict, List

from gendetect.core.constants import (
    BOUND_KEYS,
    LIST_KEYS,
    PRESENTATION_KEYS,
    ConfigKey,
    ErrorCode,
)


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code


def validate_detection_config(section: Dict[str, Any]) -> bool:
    """Validate the detection configuration section.

    Args:
        section: Mapping stored under the detection namespace

    Returns:
        True if valid

    Raises:
        ValidationError: If any key has the wrong shape
    """
    if not isinstance(section, dict):
        raise ValidationError(f"'{ConfigKey.NAMESPACE}' must be a dictionary")

    known = set(LIST_KEYS) | set(BOUND_KEYS) | set(PRESENTATION_KEYS)
    unknown = sorted(set(section.keys()) - known)
    if unknown:
        raise ValidationError(f"Unknown configuration fields: {', '.join(unknown)}")

    for key in LIST_KEYS:
        if key in section:
            validate_pattern_list(key, section[key])

    if ConfigKey.REGEX_PATTERNS in section:
        validate_regex_list(section[ConfigKey.REGEX_PATTERNS])

    for key in BOUND_KEYS:
        if key in section:
            validate_bound(key, section[key])

    for key in PRESENTATION_KEYS:
        if key in section and not isinstance(section[key], str):
            raise ValidationError(f"'{key}' must be a string: {section[key]!r}")

    return True


def validate_pattern_list(key: str, value: Any) -> List[str]:
    """Validate a list of non-empty strings.

    Returns:
        The validated list
    """
    if not isinstance(value, list):
        raise ValidationError(f"'{key}' must be a list, got {type(value).__name__}")

    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise ValidationError(f"'{key}[{i}]' must be a string, got {type(item).__name__}")
        if not item:
            raise ValidationError(f"'{key}[{i}]' cannot be empty")
        if "\0" in item:
            raise ValidationError(f"'{key}[{i}]' contains null bytes")

    return value


def validate_regex_list(patterns: List[str]) -> bool:
    """Check that every pattern compiles as a regular expression.

    Raises:
        ValidationError: On the first pattern that fails to compile
    """
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValidationError(f"Invalid regex pattern {pattern!r}: {e}")
    return True


def validate_bound(key: str, value: Any) -> int:
    """Validate a non-negative integer scan bound.

    Booleans are rejected even though they are ints in Python.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"'{key}' must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValidationError(f"'{key}' must be non-negative: {value}")
    return value
