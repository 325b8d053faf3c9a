#!/usr/bin/env python3
"""Immutable detection rules loaded from configuration.

A RuleSet bundles everything the classification engine needs to decide
whether a file is generated:
- Ordered exclusion wildcards (checked first, force "not generated")
- Attribute names to ask the attribute store about
- Ordered content regular expressions
- Byte and line bounds for the content scan

A configuration change never edits a RuleSet in place; it builds a new one
with ``RuleSet.from_config`` and hands it to the engine.

Example:
    >>> rules = RuleSet.from_config({"regexPatterns": ["@generated"], "maxSearchLines": 2})
    >>> rules.content_match("// @generated")
    '@generated'
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from gendetect.core.constants import ConfigKey, Limits
from gendetect.infrastructure.logger import get_logger
from gendetect.rules.patterns import PatternMatcher

logger = get_logger("gendetect.rules")


@dataclass(frozen=True)
class RuleSet:
    """Detection rules. Immutable once constructed."""

    exclusion_patterns: Tuple[str, ...] = ()
    metadata_keys: Tuple[str, ...] = ()
    content_patterns: Tuple[str, ...] = ()
    max_scan_bytes: int = Limits.DEFAULT_MAX_SCAN_BYTES
    max_scan_lines: int = Limits.DEFAULT_MAX_SCAN_LINES
    dropped_patterns: Tuple[str, ...] = field(default=(), compare=False)

    _exclusions: PatternMatcher = field(init=False, repr=False, compare=False)
    _contents: PatternMatcher = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        exclusions = PatternMatcher()
        for pattern in self.exclusion_patterns:
            exclusions.add_wildcard_pattern(pattern)

        contents = PatternMatcher()
        for pattern in self.content_patterns:
            contents.add_regex_pattern(pattern)

        object.__setattr__(self, "_exclusions", exclusions)
        object.__setattr__(self, "_contents", contents)

    @classmethod
    def from_config(cls, section: Optional[Mapping[str, Any]]) -> "RuleSet":
        """Build a RuleSet from a raw configuration section.

        Never raises. Invalid regular expressions and non-string entries are
        dropped with a warning; bounds fall back to their defaults when they
        are missing, not integers, or negative.

        Args:
            section: Mapping stored under the detection namespace

        Returns:
            New RuleSet
        """
        if not isinstance(section, Mapping):
            section = {}

        content_patterns: List[str] = []
        dropped: List[str] = []
        for pattern in _string_list(section, ConfigKey.REGEX_PATTERNS):
            try:
                re.compile(pattern)
            except re.error as e:
                logger.warning("Invalid regex pattern dropped", pattern=pattern, error=str(e))
                dropped.append(pattern)
                continue
            content_patterns.append(pattern)

        metadata_keys: List[str] = []
        for key in _string_list(section, ConfigKey.GIT_ATTRIBUTES):
            if key not in metadata_keys:
                metadata_keys.append(key)

        return cls(
            exclusion_patterns=tuple(_string_list(section, ConfigKey.EXCLUDE_PATTERNS)),
            metadata_keys=tuple(metadata_keys),
            content_patterns=tuple(content_patterns),
            max_scan_bytes=_bound(section, ConfigKey.MAX_SEARCH_CHARS, Limits.DEFAULT_MAX_SCAN_BYTES),
            max_scan_lines=_bound(section, ConfigKey.MAX_SEARCH_LINES, Limits.DEFAULT_MAX_SCAN_LINES),
            dropped_patterns=tuple(dropped),
        )

    @property
    def has_exclusions(self) -> bool:
        return bool(self._exclusions)

    @property
    def has_metadata_keys(self) -> bool:
        return bool(self.metadata_keys)

    @property
    def has_content_patterns(self) -> bool:
        return bool(self._contents)

    @property
    def is_empty(self) -> bool:
        """True when no step can ever report a file as generated."""
        return not self.has_metadata_keys and not self.has_content_patterns

    def excluded_by(self, path: str) -> Optional[str]:
        """Return the first exclusion wildcard matching ``path``."""
        return self._exclusions.first_match(path)

    def content_match(self, text: str) -> Optional[str]:
        """Return the first content pattern found in ``text``."""
        return self._contents.first_match(text)


def _string_list(section: Mapping[str, Any], key: str) -> List[str]:
    value = section.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        logger.warning("Expected a list, ignoring value", key=key, type=type(value).__name__)
        return []

    result = []
    for item in value:
        if not isinstance(item, str) or not item:
            logger.warning("Ignoring non-string or empty entry", key=key, entry=repr(item))
            continue
        result.append(item)
    return result


def _bound(section: Mapping[str, Any], key: str, default: int) -> int:
    value = section.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        if value is not None:
            logger.warning("Invalid scan bound, using default", key=key, value=repr(value), default=default)
        return default
    return value
