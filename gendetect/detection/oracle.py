"""
gendetect Detection: attribute store queries.

Asks git which attributes are recorded for a path:

    git check-attr <key1> <key2> ... -- <path>

Output is one ``path: attribute: value`` line per attribute. The query runs
with the project root as working directory and a hard timeout; any failure
is reported as "no attributes", never raised.
"""

import os
import subprocess
from typing import Dict, Iterable, Optional, Sequence

from gendetect.core.constants import TRUTHY_ATTRIBUTE_VALUES, Limits
from gendetect.core.identity import FileIdentity
from gendetect.infrastructure.logger import get_logger

logger = get_logger("gendetect.oracle")


def parse_check_attr_output(stdout: str) -> Dict[str, str]:
    """Parse ``git check-attr`` output into ``{attribute: value}``.

    Lines with fewer than three ``": "``-separated fields are skipped. The
    split is taken from the right so paths containing ``": "`` still parse.

    Args:
        stdout: Raw command output

    Returns:
        Mapping of attribute name to value (last line wins)
    """
    attributes: Dict[str, str] = {}
    for line in stdout.splitlines():
        parts = line.rsplit(": ", 2)
        if len(parts) < 3:
            continue
        attributes[parts[1].strip()] = parts[2].strip()
    return attributes


class MetadataOracle:
    """Read-only view of per-path git attributes."""

    def __init__(self, git_executable: str = "git", timeout: float = Limits.ATTRIBUTE_QUERY_TIMEOUT):
        """
        Args:
            git_executable: Name or path of the git binary
            timeout: Wall-clock limit for one query, in seconds
        """
        self.git_executable = git_executable
        self.timeout = timeout
        self.queries = 0

    def query(
        self, identity: FileIdentity, keys: Sequence[str], cwd: Optional[str] = None
    ) -> Dict[str, str]:
        """Look up the recorded value of each attribute for a file.

        Args:
            identity: File to query; must be file scheme
            keys: Attribute names, in command-line order
            cwd: Working directory (the project root); defaults to the file's directory

        Returns:
            ``{attribute: value}`` for the requested attributes, or ``{}`` on any failure
        """
        if not keys or not identity.is_file:
            return {}

        workdir = cwd or os.path.dirname(identity.path)
        args = [self.git_executable, "check-attr", *keys, "--", identity.path]
        self.queries += 1

        try:
            result = subprocess.run(
                args,
                cwd=workdir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            # git not available, cwd missing, or timeout
            logger.debug("Attribute query failed", path=identity.path, error=type(e).__name__)
            return {}

        if result.returncode != 0:
            logger.debug("Attribute query exited non-zero", path=identity.path, code=result.returncode)
            return {}

        requested = set(keys)
        return {
            name: value
            for name, value in parse_check_attr_output(result.stdout).items()
            if name in requested
        }

    def has_truthy(
        self, identity: FileIdentity, keys: Iterable[str], cwd: Optional[str] = None
    ) -> Optional[str]:
        """Return the first requested attribute whose value is ``set`` or ``true``."""
        ordered = list(keys)
        values = self.query(identity, ordered, cwd)
        for key in ordered:
            if values.get(key) in TRUTHY_ATTRIBUTE_VALUES:
                return key
        return None
