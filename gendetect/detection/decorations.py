"""
gendetect Detection: file decorations for generated files.

Presentation only: the badge and color come straight from configuration
and are handed to whatever renders the file tree.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from gendetect.core.constants import DEFAULT_DETECTION_CONFIG, ConfigKey
from gendetect.core.identity import FileIdentity
from gendetect.detection.engine import ClassificationEngine

GENERATED_TOOLTIP = "Generated file"


@dataclass(frozen=True)
class FileDecoration:
    """Badge, color and tooltip shown next to a generated file."""

    badge: str
    color: str
    tooltip: str = GENERATED_TOOLTIP


class DecorationProvider:
    """Turns classifications into decorations."""

    def __init__(
        self,
        engine: ClassificationEngine,
        badge: str = DEFAULT_DETECTION_CONFIG[ConfigKey.BADGE],
        color: str = DEFAULT_DETECTION_CONFIG[ConfigKey.COLOR],
    ):
        self.engine = engine
        self.badge = badge
        self.color = color

    def provide(self, identity: FileIdentity) -> Optional[FileDecoration]:
        """Return a decoration for generated files, None for everything else."""
        if not self.engine.classify(identity):
            return None
        return FileDecoration(badge=self.badge, color=self.color)

    def update_presentation(self, section: Mapping[str, Any]) -> bool:
        """Pick up ``badge`` and ``color`` from a configuration section.

        Non-string values are ignored.

        Returns:
            True if either value changed
        """
        badge = section.get(ConfigKey.BADGE)
        color = section.get(ConfigKey.COLOR)

        changed = False
        if isinstance(badge, str) and badge != self.badge:
            self.badge = badge
            changed = True
        if isinstance(color, str) and color != self.color:
            self.color = color
            changed = True
        return changed
