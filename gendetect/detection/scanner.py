"""
gendetect Detection: bounded content scanning.

Reads a prefix of a file, decodes it permissively and tests the content
patterns against it. Bytes are bounded first, then lines:

    raw bytes[:max_bytes] -> utf-8 (errors replaced) -> first max_lines lines

A bound of 0 disables that bound. Content comes from a ContentSource picked
by the identity's scheme: a direct file handle for ``file``, a registered
whole-payload reader for anything else. Every read failure is reported as
"no content" (None), never raised.
"""

from typing import Callable, Dict, Optional, Protocol

from gendetect.core.constants import FILE_SCHEME
from gendetect.core.identity import FileIdentity
from gendetect.infrastructure.logger import get_logger
from gendetect.rules.ruleset import RuleSet

logger = get_logger("gendetect.scanner")

PayloadReader = Callable[[FileIdentity], bytes]


class ContentSource(Protocol):
    """Capability: produce up to ``max_bytes`` leading bytes of a file."""

    def read(self, identity: FileIdentity, max_bytes: int) -> bytes:
        """
        Args:
            identity: File to read
            max_bytes: Byte bound; 0 reads everything

        Raises:
            OSError: If the content cannot be read
        """
        ...


class FileHandleSource:
    """Reads straight from the filesystem through a file handle."""

    def read(self, identity: FileIdentity, max_bytes: int) -> bytes:
        with open(identity.path, "rb") as f:
            if max_bytes <= 0:
                return f.read()
            return f.read(max_bytes)


class PayloadSource:
    """Reads whole payloads through per-scheme reader callables, then slices."""

    def __init__(self):
        self._readers: Dict[str, PayloadReader] = {}

    def register_reader(self, scheme: str, reader: PayloadReader) -> None:
        self._readers[scheme] = reader

    def read(self, identity: FileIdentity, max_bytes: int) -> bytes:
        reader = self._readers.get(identity.scheme)
        if reader is None:
            raise FileNotFoundError(f"No content reader for scheme: {identity.scheme}")

        payload = bytes(reader(identity))
        if max_bytes <= 0:
            return payload
        return payload[:max_bytes]


def truncate_lines(text: str, max_lines: int) -> str:
    """Keep the first ``max_lines`` lines of ``text`` (0 keeps everything)."""
    if max_lines <= 0:
        return text
    return "\n".join(text.split("\n")[:max_lines])


class ContentScanner:
    """Bounded reader and content-pattern tester."""

    def __init__(
        self,
        file_source: Optional[ContentSource] = None,
        payload_source: Optional[PayloadSource] = None,
    ):
        self.file_source = file_source or FileHandleSource()
        self.payload_source = payload_source or PayloadSource()
        self.scans = 0

    def register_reader(self, scheme: str, reader: PayloadReader) -> None:
        """Make a non-file scheme scannable."""
        self.payload_source.register_reader(scheme, reader)

    def source_for(self, identity: FileIdentity) -> ContentSource:
        if identity.scheme == FILE_SCHEME:
            return self.file_source
        return self.payload_source

    def scan(self, identity: FileIdentity, max_bytes: int, max_lines: int) -> Optional[str]:
        """Produce the bounded, decoded text prefix of a file.

        Args:
            identity: File to read
            max_bytes: Byte bound (0 = whole file)
            max_lines: Line bound applied after decoding (0 = no truncation)

        Returns:
            Decoded text, or None if the file could not be read
        """
        self.scans += 1
        try:
            data = self.source_for(identity).read(identity, max_bytes)
        except Exception as e:
            # Missing file, permission error, or a failing payload reader
            logger.debug("Content read failed", uri=identity.uri, error=type(e).__name__)
            return None

        if max_bytes > 0:
            data = data[:max_bytes]

        text = data.decode("utf-8", errors="replace")
        return truncate_lines(text, max_lines)

    def matches(self, identity: FileIdentity, rules: RuleSet) -> Optional[str]:
        """Scan a file and return the first content pattern that matches.

        Returns:
            The matching pattern text, or None (also when nothing is configured)
        """
        if not rules.has_content_patterns:
            return None

        text = self.scan(identity, rules.max_scan_bytes, rules.max_scan_lines)
        if text is None:
            return None
        return rules.content_match(text)
