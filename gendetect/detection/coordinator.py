#!/usr/bin/env python3
"""Change coordinator: keeps classifications current as things change.

Consumes host events and turns them into engine calls:

- configuration changed -> new RuleSet, cache cleared, broadcast refresh,
                           workspace reclassified (when a file source is set), resync
- file changed/created   -> forget the verdict and classify again
- file deleted           -> forget the verdict
- active view changed    -> classify the visible file
- document saved         -> forget the verdict

Produces two kinds of notification for consumers:

- decoration changed: called with one identity, or None for "everything"
- read-only sync: called with the ``{relative_path: True}`` allow-list

Listeners are plain callables; a failing listener is logged and the rest
still run.
"""

import copy
import threading
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from gendetect.core.constants import ConfigKey
from gendetect.core.identity import FileIdentity
from gendetect.detection.decorations import DecorationProvider
from gendetect.detection.engine import ClassificationEngine
from gendetect.infrastructure.logger import get_logger
from gendetect.infrastructure.readonly_sync import build_readonly_include
from gendetect.rules.ruleset import RuleSet

logger = get_logger("gendetect.coordinator")

DecorationListener = Callable[[Optional[FileIdentity]], None]
ReadOnlySink = Callable[[Dict[str, bool]], None]


class FileEventType(Enum):
    """File lifecycle and editor events."""

    CHANGED = "changed"
    CREATED = "created"
    DELETED = "deleted"
    ACTIVE_VIEW = "active_view"
    SAVED = "saved"


class ChangeCoordinator:
    """Routes configuration and file events to the classification engine."""

    def __init__(
        self,
        engine: ClassificationEngine,
        decorations: Optional[DecorationProvider] = None,
        workspace_files: Optional[Callable[[], Iterable[FileIdentity]]] = None,
    ):
        """
        Args:
            engine: Engine whose rules and cache this coordinator keeps current
            decorations: Optional provider whose badge/color follow configuration
            workspace_files: Optional source of every workspace file, classified
                again after a rules reload so the allow-list is rebuilt
        """
        self.engine = engine
        self.decorations = decorations
        self.workspace_files = workspace_files

        self._lock = threading.RLock()
        self._decoration_listeners: List[DecorationListener] = []
        self._readonly_sinks: List[ReadOnlySink] = []
        self._last_section: Optional[Dict[str, Any]] = None
        self._reclassifying = False

        engine.on_generated = self._on_generated

    # -- listener registration -------------------------------------------

    def on_decorations_changed(self, listener: DecorationListener) -> None:
        with self._lock:
            self._decoration_listeners.append(listener)

    def remove_decorations_listener(self, listener: DecorationListener) -> None:
        with self._lock:
            if listener in self._decoration_listeners:
                self._decoration_listeners.remove(listener)

    def on_readonly_sync(self, sink: ReadOnlySink) -> None:
        with self._lock:
            self._readonly_sinks.append(sink)

    def remove_readonly_sink(self, sink: ReadOnlySink) -> None:
        with self._lock:
            if sink in self._readonly_sinks:
                self._readonly_sinks.remove(sink)

    # -- inbound events ----------------------------------------------------

    def start(self, config: Mapping[str, Any], visible: Iterable[FileIdentity] = ()) -> None:
        """Load the initial rules, publish the allow-list and classify visible files."""
        self.configuration_changed(config, force=True)
        for identity in visible:
            self.engine.classify(identity)

    def configuration_changed(self, config: Mapping[str, Any], force: bool = False) -> bool:
        """Rebuild the rules when the detection section changed.

        Args:
            config: Merged configuration (as passed to config watchers)
            force: Reload even if the detection section looks unchanged

        Returns:
            True if the rules were reloaded
        """
        section = config.get(ConfigKey.NAMESPACE) if isinstance(config, Mapping) else None
        if not isinstance(section, Mapping):
            section = {}

        with self._lock:
            if not force and self._last_section is not None and section == self._last_section:
                return False
            self._last_section = copy.deepcopy(dict(section))

        self.engine.reload(RuleSet.from_config(section))
        if self.decorations is not None:
            self.decorations.update_presentation(section)

        self.notify_decorations(None)
        self.reclassify_workspace()
        self.sync_readonly()
        return True

    def reclassify_workspace(self) -> int:
        """Classify every workspace file against the current rules.

        Per-file generated signals are held back while this runs; the caller
        publishes the allow-list once afterwards.

        Returns:
            Number of files classified
        """
        if self.workspace_files is None:
            return 0

        with self._lock:
            self._reclassifying = True
        count = 0
        try:
            for identity in self.workspace_files():
                self.engine.classify(identity)
                count += 1
        finally:
            with self._lock:
                self._reclassifying = False

        logger.info("Workspace reclassified", files=count)
        return count

    def file_changed(self, identity: FileIdentity) -> bool:
        """Re-classify a file whose content changed."""
        previous = self.engine.invalidate(identity)
        current = self.engine.classify(identity)
        if previous and not current:
            # Left the generated set; a fresh True already notified through the engine
            self.notify_decorations(identity)
            self.sync_readonly()
        return current

    def file_created(self, identity: FileIdentity) -> bool:
        return self.file_changed(identity)

    def file_deleted(self, identity: FileIdentity) -> None:
        previous = self.engine.invalidate(identity)
        self.notify_decorations(identity)
        if previous:
            self.sync_readonly()

    def active_view_changed(self, identity: Optional[FileIdentity]) -> Optional[bool]:
        if identity is None:
            return None
        return self.engine.classify(identity)

    def document_saved(self, identity: FileIdentity) -> None:
        self.engine.invalidate(identity)

    def dispatch(self, event_type: FileEventType, identity: FileIdentity) -> None:
        """Route a file event by type."""
        handlers = {
            FileEventType.CHANGED: self.file_changed,
            FileEventType.CREATED: self.file_created,
            FileEventType.DELETED: self.file_deleted,
            FileEventType.ACTIVE_VIEW: self.active_view_changed,
            FileEventType.SAVED: self.document_saved,
        }
        logger.debug("File event", event=event_type.value, uri=identity.uri)
        handlers[event_type](identity)

    # -- outbound notifications ------------------------------------------

    def _on_generated(self, identity: FileIdentity) -> None:
        with self._lock:
            if self._reclassifying:
                return
        self.notify_decorations(identity)
        self.sync_readonly()

    def notify_decorations(self, identity: Optional[FileIdentity]) -> None:
        """Tell listeners one file (or, with None, every file) needs redrawing."""
        with self._lock:
            listeners = list(self._decoration_listeners)

        for listener in listeners:
            try:
                listener(identity)
            except Exception as e:
                logger.exception("Decoration listener failed", e)

    def sync_readonly(self) -> Dict[str, bool]:
        """Push the current generated-file allow-list to every read-only sink.

        Returns:
            The allow-list that was published
        """
        include = build_readonly_include(self.engine.get_generated_files())

        with self._lock:
            sinks = list(self._readonly_sinks)

        for sink in sinks:
            try:
                sink(include)
            except Exception as e:
                logger.exception("Read-only sync failed", e, files=len(include))
        return include
