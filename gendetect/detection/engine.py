#!/usr/bin/env python3
"""Classification engine: decides whether a file is generated.

Checks run in strict precedence with short-circuiting:

1. Exclusion wildcards over the root-relative path -> not generated
2. Cached verdict, if any
3. Attribute store (``git check-attr``) -> generated on ``set``/``true``
4. Bounded content scan against the content patterns -> generated on match
5. Otherwise not generated

A step whose rule collection is empty is skipped outright. Lower-level
failures count as "no match", so ``classify`` always returns a bool.

The engine is the only writer of the rules and the cache. Reloading swaps
the RuleSet and clears the cache under one lock; a classification that was
started against the previous RuleSet does not store its verdict.

Example:
    >>> engine = ClassificationEngine(RuleSet.from_config(section), WorkspaceRoots(["/work"]))
    >>> engine.classify(FileIdentity.from_path("/work/gen.ts"))
    True
    >>> engine.get_generated_files()
    ['gen.ts']
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from gendetect.core.constants import RelativePath
from gendetect.core.identity import FileIdentity, WorkspaceRoots
from gendetect.detection.oracle import MetadataOracle
from gendetect.detection.scanner import ContentScanner
from gendetect.infrastructure.cache_manager import ClassificationCache
from gendetect.infrastructure.logger import get_logger
from gendetect.rules.ruleset import RuleSet

logger = get_logger("gendetect.engine")


class MatchKind(Enum):
    """Which check decided the classification."""

    EXCLUDED = "excluded"
    ATTRIBUTE = "attribute"
    CONTENT = "content"
    NONE = "none"


@dataclass(frozen=True)
class Classification:
    """Verdict plus the single rule that produced it."""

    identity: FileIdentity
    is_generated: bool
    kind: MatchKind = MatchKind.NONE
    rule: Optional[str] = None

    def describe(self) -> str:
        if self.kind == MatchKind.NONE:
            return "no rule matched"
        return f"{self.kind.value}: {self.rule}"


class ClassificationEngine:
    """Decision authority for generated/source classification."""

    def __init__(
        self,
        rules: Optional[RuleSet] = None,
        roots: Optional[WorkspaceRoots] = None,
        oracle: Optional[MetadataOracle] = None,
        scanner: Optional[ContentScanner] = None,
        cache: Optional[ClassificationCache] = None,
        on_generated: Optional[Callable[[FileIdentity], None]] = None,
    ):
        """Initialize engine.

        Args:
            rules: Detection rules (defaults to an empty RuleSet with default bounds)
            roots: Workspace roots used for relative paths and the query cwd
            oracle: Attribute store client
            scanner: Content scanner
            cache: Verdict cache
            on_generated: Called with the identity after a fresh True verdict
        """
        self._rules = rules or RuleSet()
        self.roots = roots or WorkspaceRoots()
        self.oracle = oracle or MetadataOracle()
        self.scanner = scanner or ContentScanner()
        self._cache = cache or ClassificationCache()
        self.on_generated = on_generated

        self._lock = threading.RLock()
        self._generation = 0

    @property
    def rules(self) -> RuleSet:
        with self._lock:
            return self._rules

    def classify(self, identity: FileIdentity) -> bool:
        """Return whether the file is generated, using the cache when possible.

        Args:
            identity: File to classify

        Returns:
            True if generated
        """
        with self._lock:
            rules = self._rules
            generation = self._generation

        excluded = self._check_exclusion(identity, rules)
        if excluded is not None:
            return False

        cached = self._cache.get(identity)
        if cached is not None:
            return cached

        result = self._evaluate(identity, rules)

        with self._lock:
            if generation != self._generation:
                # Rules were reloaded while we were checking; the verdict belongs to old rules
                logger.debug("Discarding verdict computed against replaced rules", uri=identity.uri)
                return result.is_generated
            self._cache.set(identity, result.is_generated, result.rule)

        if result.is_generated:
            logger.debug("Generated file detected", uri=identity.uri, rule=result.describe())
            self._signal_generated(identity)

        return result.is_generated

    def explain(self, identity: FileIdentity) -> Classification:
        """Classify without consulting or updating the cache, reporting the deciding rule."""
        rules = self.rules
        excluded = self._check_exclusion(identity, rules)
        if excluded is not None:
            return Classification(identity, False, MatchKind.EXCLUDED, excluded)
        return self._evaluate(identity, rules)

    def _check_exclusion(self, identity: FileIdentity, rules: RuleSet) -> Optional[str]:
        if not rules.has_exclusions:
            return None
        return rules.excluded_by(self.roots.relative_path(identity))

    def _evaluate(self, identity: FileIdentity, rules: RuleSet) -> Classification:
        if rules.has_metadata_keys and identity.is_file:
            cwd = self.roots.root_for(identity)
            attribute = self.oracle.has_truthy(identity, rules.metadata_keys, cwd)
            if attribute is not None:
                return Classification(identity, True, MatchKind.ATTRIBUTE, attribute)

        if rules.has_content_patterns:
            pattern = self.scanner.matches(identity, rules)
            if pattern is not None:
                return Classification(identity, True, MatchKind.CONTENT, pattern)

        return Classification(identity, False)

    def _signal_generated(self, identity: FileIdentity) -> None:
        if self.on_generated is None:
            return
        try:
            self.on_generated(identity)
        except Exception as e:
            logger.exception("Generated-file listener failed", e, uri=identity.uri)

    def cached(self, identity: FileIdentity) -> Optional[bool]:
        """Peek at the cached verdict without classifying."""
        entry = self._cache.get_entry(identity)
        return None if entry is None else entry.is_generated

    def invalidate(self, identity: FileIdentity) -> Optional[bool]:
        """Forget one verdict so the next query recomputes it.

        Returns:
            The verdict that was forgotten, or None
        """
        return self._cache.invalidate(identity)

    def invalidate_all(self) -> int:
        """Forget every verdict."""
        with self._lock:
            self._generation += 1
            return self._cache.invalidate_all()

    def reload(self, rules: RuleSet) -> None:
        """Replace the rules and clear the cache in one step."""
        with self._lock:
            self._rules = rules
            self._generation += 1
            count = self._cache.invalidate_all()
        logger.info(
            "Rules reloaded",
            exclusions=len(rules.exclusion_patterns),
            attributes=len(rules.metadata_keys),
            patterns=len(rules.content_patterns),
            invalidated=count,
        )

    def get_generated_files(self) -> List[RelativePath]:
        """Root-relative (else absolute) paths of every file cached as generated."""
        return self._cache.enumerate_generated(self.roots)

    def get_stats(self) -> Dict[str, Any]:
        stats = self._cache.get_stats()
        stats["attribute_queries"] = self.oracle.queries
        stats["content_scans"] = self.scanner.scans
        return stats
