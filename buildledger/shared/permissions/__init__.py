"""
Shared permission system for role-based access control.

Profiles carry a single role (``user`` or ``admin``); each role maps to a
set of permissions checked by the ``require_permission`` dependency.

Usage:
    from buildledger.shared.permissions import Permission, require_permission

    @router.get("/admin/users")
    async def list_users(
        profile: Profile = Depends(require_permission(Permission.VIEW_USERS))
    ):
        pass
"""

from .dependencies import require_permission
from .models import ROLE_PERMISSIONS, Permission
from .services import has_permission

__all__ = [
    "Permission",
    "ROLE_PERMISSIONS",
    "has_permission",
    "require_permission",
]
