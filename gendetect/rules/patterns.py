#!/usr/bin/env python3
r"""Pattern matching for exclusion paths and file content.

This module provides the two kinds of pattern gendetect evaluates:
- Wildcard patterns over paths (``*`` and ``?`` only, unanchored)
- Regular expressions over decoded file content
- Case-sensitive and case-insensitive modes
- Multiple pattern support with OR logic, first match reported

Wildcards are intentionally simpler than shell globs: ``*`` becomes ``.*``,
``?`` becomes ``.``, every other character is literal, and the result is
searched anywhere in the path, so ``*.test.ts`` matches ``src/a.test.ts``.

Example:
    >>> matcher = PatternMatcher()
    >>> matcher.add_wildcard_pattern("*.test.ts")
    >>> matcher.add_regex_pattern(r"@generated")
    >>> matcher.first_match("src/gen.test.ts")
    '*.test.ts'
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern


class PatternType(Enum):
    """Pattern matching type."""

    WILDCARD = "wildcard"  # * and ? over paths
    REGEX = "regex"  # Regular expressions


@dataclass(frozen=True)
class PatternEntry:
    """A single compiled pattern with its source text."""

    pattern: str
    pattern_type: PatternType
    compiled: Pattern
    case_sensitive: bool = True


def wildcard_to_regex(pattern: str) -> str:
    """Translate a wildcard pattern to an unanchored regular expression.

    Args:
        pattern: Wildcard pattern such as ``*.test.ts`` or ``gen?.ts``

    Returns:
        Regular expression source
    """
    pieces = []
    for char in pattern:
        if char == "*":
            pieces.append(".*")
        elif char == "?":
            pieces.append(".")
        else:
            pieces.append(re.escape(char))
    return "".join(pieces)


class PatternMatcher:
    """Ordered collection of wildcard and regex patterns.

    Features:
    - Multiple pattern types (wildcard, regex)
    - Case-sensitive/insensitive matching
    - Patterns compiled once when added
    - OR logic (matches any pattern), evaluated in insertion order
    """

    def __init__(self, case_sensitive: bool = True):
        """Initialize pattern matcher.

        Args:
            case_sensitive: Whether patterns are case-sensitive
        """
        self._patterns: List[PatternEntry] = []
        self._case_sensitive = case_sensitive

    def add_wildcard_pattern(self, pattern: str, case_sensitive: Optional[bool] = None) -> PatternEntry:
        """Add wildcard pattern.

        Args:
            pattern: Wildcard pattern (e.g., "*.test.ts", "dist/*")
            case_sensitive: Override default case sensitivity

        Returns:
            The compiled entry
        """
        is_case_sensitive = case_sensitive if case_sensitive is not None else self._case_sensitive
        flags = 0 if is_case_sensitive else re.IGNORECASE

        entry = PatternEntry(
            pattern=pattern,
            pattern_type=PatternType.WILDCARD,
            compiled=re.compile(wildcard_to_regex(self._normalize(pattern)), flags),
            case_sensitive=is_case_sensitive,
        )
        self._patterns.append(entry)
        return entry

    def add_regex_pattern(self, pattern: str, case_sensitive: Optional[bool] = None) -> PatternEntry:
        """Add regex pattern.

        Args:
            pattern: Regular expression pattern
            case_sensitive: Override default case sensitivity

        Returns:
            The compiled entry

        Raises:
            re.error: If the pattern does not compile
        """
        is_case_sensitive = case_sensitive if case_sensitive is not None else self._case_sensitive
        flags = 0 if is_case_sensitive else re.IGNORECASE

        entry = PatternEntry(
            pattern=pattern,
            pattern_type=PatternType.REGEX,
            compiled=re.compile(pattern, flags),
            case_sensitive=is_case_sensitive,
        )
        self._patterns.append(entry)
        return entry

    @staticmethod
    def _normalize(path: str) -> str:
        """Normalize path separators so Windows-style input matches too."""
        return path.replace("\\", "/")

    def first_match(self, text: str) -> Optional[str]:
        """Return the source text of the first pattern found in ``text``.

        Wildcard entries see ``text`` with normalized separators; regex
        entries see it unchanged.

        Args:
            text: Path (for wildcard patterns) or content (for regex patterns)

        Returns:
            The matching pattern, or None
        """
        for entry in self._patterns:
            subject = self._normalize(text) if entry.pattern_type == PatternType.WILDCARD else text
            if entry.compiled.search(subject):
                return entry.pattern
        return None

    def matches(self, text: str) -> bool:
        """Check if ``text`` matches any pattern."""
        return self.first_match(text) is not None

    def __len__(self) -> int:
        """Return number of patterns."""
        return len(self._patterns)

    def __bool__(self) -> bool:
        """Return True if any patterns are registered."""
        return bool(self._patterns)
