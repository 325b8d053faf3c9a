"""gendetect Rules System.

This module provides the detection rules and pattern matching:
- PatternMatcher: Wildcard and regex pattern matching
- RuleSet: Immutable rules built from configuration
"""

from .patterns import PatternEntry, PatternMatcher, PatternType, wildcard_to_regex
from .ruleset import RuleSet

__all__ = [
    # Pattern matching
    "PatternType",
    "PatternEntry",
    "PatternMatcher",
    "wildcard_to_regex",
    # Rules
    "RuleSet",
]
