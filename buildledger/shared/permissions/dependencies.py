from typing import Awaitable, Callable

from fastapi import Depends, HTTPException, status
from prisma.models import Profile

from buildledger.domains.auth.dependencies import get_current_profile

from .models import Permission
from .services import has_permission


def require_permission(
    permission: Permission,
) -> Callable[..., Awaitable[Profile]]:
    """
    Dependency factory for role-based authorization.

    Creates a dependency that validates the current user's role grants the
    specified permission.

    Args:
        permission: The permission required to access the endpoint

    Returns:
        Async dependency function that validates permission and returns the profile
    """

    async def check_permission(
        profile: Profile = Depends(get_current_profile),
    ) -> Profile:
        if not has_permission(profile.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions: {permission.value} required",
            )

        return profile

    return check_permission
