"""
Exchange role resolution and participancy checks.
"""

from skillswap.kernel.permissions.roles import (
    BusinessRole,
    ROLE_PERMISSIONS,
    RoleResolution,
    can_edit_field,
    resolve_exchange_role,
)
from skillswap.kernel.permissions.permission_service import PermissionService

__all__ = [
    "BusinessRole",
    "ROLE_PERMISSIONS",
    "RoleResolution",
    "can_edit_field",
    "resolve_exchange_role",
    "PermissionService",
]
