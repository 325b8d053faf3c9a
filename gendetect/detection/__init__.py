"""gendetect Detection Layer.

- MetadataOracle: git attribute queries
- ContentScanner: bounded content reads and pattern tests
- ClassificationEngine: ordered, cached generated/source decision
- DecorationProvider: badge and color for generated files
- ChangeCoordinator: keeps verdicts current as files and configuration change
"""

from .coordinator import ChangeCoordinator, FileEventType
from .decorations import DecorationProvider, FileDecoration
from .engine import Classification, ClassificationEngine, MatchKind
from .oracle import MetadataOracle, parse_check_attr_output
from .scanner import ContentScanner, FileHandleSource, PayloadSource

__all__ = [
    "MetadataOracle",
    "parse_check_attr_output",
    "ContentScanner",
    "FileHandleSource",
    "PayloadSource",
    "Classification",
    "ClassificationEngine",
    "MatchKind",
    "DecorationProvider",
    "FileDecoration",
    "ChangeCoordinator",
    "FileEventType",
]
