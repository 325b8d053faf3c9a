"""gendetect Core - Shared constants, identities and validators.

Import specific names from submodules:
    from gendetect.core.identity import FileIdentity, WorkspaceRoots
    from gendetect.core.constants import ConfigKey, ErrorCode, Limits
    from gendetect.core.validators import ValidationError
"""

from gendetect.core import constants, identity, validators

__all__ = [
    "constants",
    "identity",
    "validators",
]
