from enum import Enum
from typing import Set

from prisma.enums import UserRole


class Permission(Enum):
    """
    Defines all permissions available in the system.

    Permissions should follow the pattern: ACTION_RESOURCE
    """

    # User administration
    VIEW_USERS = "view_users"  # List every profile with role and status
    MANAGE_USERS = "manage_users"  # Activate, deactivate and change roles

    # Accounting integration
    RUN_SYNC = "run_sync"  # Trigger an incremental Xero sync by hand


ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.admin: {
        Permission.VIEW_USERS,
        Permission.MANAGE_USERS,
        Permission.RUN_SYNC,
    },
    UserRole.user: set(),
}
