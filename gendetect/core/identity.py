"""
gendetect Core: File identity and workspace roots.

A FileIdentity is the join key between file events, the classification
cache and the attribute/content checks. WorkspaceRoots answers "which project
root contains this file" for root-relative reporting and matching.
"""
import os
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional
from urllib.parse import unquote, urlsplit

from gendetect.core.constants import FILE_SCHEME, RelativePath, Uri

# Directory names never descended into when walking a root
SKIPPED_DIRECTORIES = frozenset({".git"})


@dataclass(frozen=True)
class FileIdentity:
    """Canonical identity of a file: addressing scheme plus location.

    Two identities are equal iff their canonical ``uri`` strings are equal.
    """

    scheme: str = field(compare=False)
    path: str = field(compare=False)
    uri: Uri = field(init=False, repr=False, compare=True)

    def __post_init__(self) -> None:
        if self.scheme == FILE_SCHEME:
            canonical = f"file://{self.path}"
        else:
            canonical = f"{self.scheme}://{self.path}"
        object.__setattr__(self, "uri", canonical)

    @classmethod
    def from_path(cls, path: "str | os.PathLike[str]") -> "FileIdentity":
        """Build a file-scheme identity from a filesystem path."""
        absolute = os.path.normpath(os.path.abspath(os.fspath(path)))
        return cls(scheme=FILE_SCHEME, path=absolute)

    @classmethod
    def parse(cls, uri: str) -> "FileIdentity":
        """Parse a ``scheme://location`` string.

        Strings without a scheme are treated as filesystem paths.
        """
        if "://" not in uri:
            return cls.from_path(uri)

        parts = urlsplit(uri)
        if parts.scheme == FILE_SCHEME:
            return cls.from_path(unquote(parts.path))

        location = uri.split("://", 1)[1]
        return cls(scheme=parts.scheme, path=location)

    @property
    def is_file(self) -> bool:
        """Whether this identity addresses a real filesystem path."""
        return self.scheme == FILE_SCHEME

    @property
    def name(self) -> str:
        """Last path component."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return self.uri


class WorkspaceRoots:
    """Ordered collection of project root directories."""

    def __init__(self, roots: Optional[Iterable["str | os.PathLike[str]"]] = None):
        self._roots: List[str] = []
        for root in roots or []:
            self.add(root)

    def add(self, root: "str | os.PathLike[str]") -> str:
        """Register a root directory, returning its normalized form."""
        normalized = os.path.normpath(os.path.abspath(os.fspath(root)))
        if normalized not in self._roots:
            self._roots.append(normalized)
        return normalized

    def root_for(self, identity: FileIdentity) -> Optional[str]:
        """Return the deepest root containing the identity, if any.

        Only file-scheme identities can live under a root.
        """
        if not identity.is_file:
            return None

        best: Optional[str] = None
        for root in self._roots:
            if identity.path == root or identity.path.startswith(root.rstrip(os.sep) + os.sep):
                if best is None or len(root) > len(best):
                    best = root
        return best

    def relative_path(self, identity: FileIdentity) -> RelativePath:
        """Path relative to the containing root, else the raw path."""
        root = self.root_for(identity)
        if root is None:
            return identity.path
        return os.path.relpath(identity.path, root).replace(os.sep, "/")

    def iter_files(self) -> Iterator[FileIdentity]:
        """Walk every root and yield each regular file, in sorted order.

        Directories named in SKIPPED_DIRECTORIES are not entered. Files under
        nested roots are yielded once.
        """
        seen = set()
        for root in self._roots:
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRECTORIES)
                for filename in sorted(filenames):
                    full = os.path.join(dirpath, filename)
                    if full in seen or not os.path.isfile(full):
                        continue
                    seen.add(full)
                    yield FileIdentity.from_path(full)

    def __iter__(self):
        return iter(list(self._roots))

    def __len__(self) -> int:
        return len(self._roots)

    def __bool__(self) -> bool:
        return bool(self._roots)
