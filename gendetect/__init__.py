"""gendetect - Generated file detection.

Classifies files in a workspace as generated or hand-written using git
attributes and bounded content scans, keeps the verdicts current as files
and configuration change, and publishes the generated-file list as a
read-only allow-list.
"""

from gendetect.core.constants import GENDETECT_VERSION

__version__ = GENDETECT_VERSION

__all__ = ["__version__"]
