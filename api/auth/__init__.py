"""Authentication and authorization module for the API.

Token handling lives in ``api.auth.jwt`` and ``api.auth.dependencies``,
which require JWT_SECRET at import time; they are imported by the HTTP
layer only so services and scripts can run without it.
"""

from api.auth.capabilities import (
    Capability,
    ROLE_CAPABILITIES,
    get_capabilities_for_role,
    has_capability,
    permission_snapshot,
)
from api.auth.workspace_access import (
    ensure_mutable,
    get_active_membership,
    load_workspace,
    require_capability,
    require_read_access,
)

__all__ = [
    # Capabilities
    "Capability",
    "ROLE_CAPABILITIES",
    "get_capabilities_for_role",
    "has_capability",
    "permission_snapshot",
    # Workspace access
    "ensure_mutable",
    "get_active_membership",
    "load_workspace",
    "require_capability",
    "require_read_access",
]
