#!/usr/bin/env python3
"""Classification cache for gendetect.

This module memoizes the "is generated" verdict per file with:
- O(1) lookup by canonical identity
- Point invalidation (file changed, created, deleted or saved)
- Bulk invalidation (rule reload)
- Enumeration of generated files for the read-only allow-list
- Thread-safe operations
- Cache statistics

There is no eviction: dropping a cached True would silently remove a file
from the read-only allow-list.

Example:
    >>> cache = ClassificationCache()
    >>> cache.set(identity, True, rule="@generated")
    >>> cache.get(identity)
    True
    >>> cache.enumerate_generated(roots)
    ['src/gen.ts']
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gendetect.core.constants import RelativePath, Uri
from gendetect.core.identity import FileIdentity, WorkspaceRoots


@dataclass
class CacheEntry:
    """Single cached verdict with metadata."""

    identity: FileIdentity
    is_generated: bool
    rule: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def age(self) -> float:
        """Seconds since the verdict was stored."""
        return time.time() - self.timestamp


class ClassificationCache:
    """Thread-safe map of FileIdentity -> is-generated verdict.

    Entries keep the insertion order of their first classification;
    overwriting a verdict does not move the entry.
    """

    def __init__(self):
        self._entries: "OrderedDict[Uri, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

        # Statistics
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def has(self, identity: FileIdentity) -> bool:
        """Check whether a verdict is cached for the identity."""
        with self._lock:
            return identity.uri in self._entries

    def get(self, identity: FileIdentity) -> Optional[bool]:
        """Get the cached verdict.

        Returns:
            The cached boolean, or None when the identity is unknown
        """
        with self._lock:
            entry = self._entries.get(identity.uri)
            if entry is None:
                self._misses += 1
                return None

            self._hits += 1
            return entry.is_generated

    def get_entry(self, identity: FileIdentity) -> Optional[CacheEntry]:
        """Get the full cache entry without touching statistics."""
        with self._lock:
            return self._entries.get(identity.uri)

    def set(self, identity: FileIdentity, is_generated: bool, rule: Optional[str] = None) -> None:
        """Store (or overwrite) the verdict for an identity.

        Args:
            identity: File identity
            is_generated: Classification verdict
            rule: The single rule that produced a True verdict
        """
        with self._lock:
            self._entries[identity.uri] = CacheEntry(
                identity=identity, is_generated=is_generated, rule=rule
            )

    def invalidate(self, identity: FileIdentity) -> Optional[bool]:
        """Remove the verdict for one identity.

        Returns:
            The verdict that was removed, or None if nothing was cached
        """
        with self._lock:
            entry = self._entries.pop(identity.uri, None)
            if entry is None:
                return None
            self._invalidations += 1
            return entry.is_generated

    def invalidate_all(self) -> int:
        """Remove every verdict.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._invalidations += count
            return count

    def enumerate_generated(self, roots: WorkspaceRoots) -> List[RelativePath]:
        """List every file currently cached as generated.

        Paths are relative to the containing workspace root, or the raw
        absolute path when no root contains the file.
        """
        with self._lock:
            generated = [entry.identity for entry in self._entries.values() if entry.is_generated]

        return [roots.relative_path(identity) for identity in generated]

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Cache statistics
        """
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = self._hits / total_requests if total_requests > 0 else 0

            return {
                "entries": len(self._entries),
                "generated": sum(1 for e in self._entries.values() if e.is_generated),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
                "invalidations": self._invalidations,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
