"""
File watcher infrastructure component.

Provides file system monitoring using the watchdog library with support for:
- File creation, modification, deletion, and move events
- Several workspace roots on one observer
- Ignore pattern filtering (path components such as ``.git``)
- Callback isolation (a failing callback never stops the observer)

Events are delivered as ``(FileEventType, FileIdentity)`` pairs, which is
exactly what ``ChangeCoordinator.dispatch`` accepts. A move is reported as a
delete of the old path followed by a create of the new one.

Roots are watched under the spelling they were given. When a root is a
symlink, event paths reported under its target are rewritten back to that
spelling, so identities match the ones built by a workspace scan.
"""

import fnmatch
import os
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from gendetect.core.constants import Limits
from gendetect.core.identity import FileIdentity
from gendetect.detection.coordinator import FileEventType
from gendetect.infrastructure.logger import get_logger

logger = get_logger("gendetect.watcher")

FileEventCallback = Callable[[FileEventType, FileIdentity], None]

DEFAULT_IGNORE_PATTERNS = [".git", "*.tmp", "*.swp", "*~"]


def root_aliases(paths: Iterable[Path]) -> List[Tuple[str, str]]:
    """Pair each symlinked root's real path with the spelling it was given.

    Roots whose real path equals their given path are left out.
    """
    aliases = []
    for path in paths:
        given = os.path.abspath(path)
        real = os.path.realpath(given)
        if real != given:
            aliases.append((real, given))
    return aliases


class FileWatcher:
    """
    File system watcher implementation using watchdog.

    Monitors one or more directories recursively and forwards file events
    through a callback.
    """

    def __init__(self, ignore_patterns: Optional[List[str]] = None):
        """
        Initialize the file watcher.

        Args:
            ignore_patterns: fnmatch patterns tested against every path component
        """
        self._ignore_patterns = (
            list(ignore_patterns) if ignore_patterns is not None else list(DEFAULT_IGNORE_PATTERNS)
        )
        self._observer: Optional[Observer] = None
        self._callback: Optional[FileEventCallback] = None
        self._watch_paths: List[Path] = []
        self._lock = threading.Lock()

    def start(self, paths: Iterable[Path], callback: FileEventCallback) -> None:
        """
        Start watching the specified directories.

        Args:
            paths: Directories to watch (each must exist and be a directory)
            callback: Function to call when file events occur

        Raises:
            ValueError: If a path doesn't exist or isn't a directory
            RuntimeError: If watcher is already running
        """
        with self._lock:
            if self._observer is not None and self._observer.is_alive():
                raise RuntimeError("File watcher is already running")

            watch_paths = []
            for path in paths:
                path = Path(os.path.abspath(path))
                if not path.exists():
                    raise ValueError(f"Path does not exist: {path}")
                if not path.is_dir():
                    raise ValueError(f"Path is not a directory: {path}")
                watch_paths.append(path)

            self._watch_paths = watch_paths
            self._callback = callback

            handler = _WatchdogEventHandler(
                callback=self._handle_event,
                ignore_patterns=self._ignore_patterns,
                root_aliases=root_aliases(watch_paths),
            )

            self._observer = Observer()
            for path in watch_paths:
                self._observer.schedule(handler, str(path), recursive=True)
            self._observer.start()

            logger.info("Started watching", paths=",".join(str(p) for p in watch_paths))

    def stop(self) -> None:
        """Stop watching and release resources."""
        with self._lock:
            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=Limits.WATCHER_STOP_TIMEOUT)
                self._observer = None
                logger.info("Stopped watching", paths=",".join(str(p) for p in self._watch_paths))
            self._callback = None
            self._watch_paths = []

    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        with self._lock:
            return self._observer is not None and self._observer.is_alive()

    def _handle_event(self, event_type: FileEventType, identity: FileIdentity) -> None:
        """Internal handler that forwards events to the callback."""
        callback = self._callback
        if callback is None:
            return
        try:
            callback(event_type, identity)
        except Exception as e:
            logger.exception("Error in file event callback", e, uri=identity.uri)


class _WatchdogEventHandler(FileSystemEventHandler):
    """
    Internal watchdog event handler.

    Converts watchdog events to file events and applies filtering.
    """

    def __init__(
        self,
        callback: FileEventCallback,
        ignore_patterns: List[str],
        root_aliases: Optional[List[Tuple[str, str]]] = None,
    ):
        super().__init__()
        self._callback = callback
        self._ignore_patterns = ignore_patterns
        self._root_aliases = root_aliases or []

    def _as_given(self, raw_path: str) -> str:
        for real, given in self._root_aliases:
            if raw_path == real or raw_path.startswith(real.rstrip(os.sep) + os.sep):
                return given + raw_path[len(real) :]
        return raw_path

    def _should_ignore(self, path: Path) -> bool:
        for part in path.parts:
            for pattern in self._ignore_patterns:
                if fnmatch.fnmatch(part, pattern):
                    return True
        return False

    def _emit(self, event_type: FileEventType, raw_path: str) -> None:
        path = Path(self._as_given(os.fsdecode(raw_path)))
        if self._should_ignore(path):
            logger.debug("Ignoring event", event=event_type.value, path=str(path))
            return
        self._callback(event_type, FileIdentity.from_path(path))

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file creation events."""
        if isinstance(event, DirCreatedEvent):
            return
        self._emit(FileEventType.CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification events."""
        if isinstance(event, DirModifiedEvent):
            return
        self._emit(FileEventType.CHANGED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle file deletion events."""
        if isinstance(event, DirDeletedEvent):
            return
        self._emit(FileEventType.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file move events as delete + create."""
        if isinstance(event, DirMovedEvent):
            return
        self._emit(FileEventType.DELETED, event.src_path)
        self._emit(FileEventType.CREATED, event.dest_path)
