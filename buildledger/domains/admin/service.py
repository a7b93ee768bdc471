import logging
from typing import Any, Dict, Optional

from prisma.enums import UserRole
from prisma.errors import PrismaError
from prisma.models import Profile

from buildledger.domains.admin.models import (
    AdminUserListResponse,
    AdminUserResponse,
    AdminUserUpdateResponse,
)
from buildledger.shared.exceptions import (
    InvalidDataError,
    QueryFailedError,
    UserNotFoundError,
)
from prisma import Prisma

logger = logging.getLogger(__name__)


class AdminUserService:
    """User management operations available to admins."""

    def __init__(self, db: Prisma):
        self.db = db

    async def list_users(self) -> AdminUserListResponse:
        try:
            profiles = await self.db.profile.find_many(order={"createdAt": "desc"})
        except PrismaError as e:
            logger.error(f"User listing failed: {e}", exc_info=True)
            raise QueryFailedError(f"Failed to fetch users: {e}")
        return AdminUserListResponse(
            users=[AdminUserResponse.from_prisma(profile) for profile in profiles]
        )

    async def set_active(
        self, admin: Profile, user_id: str, request: Dict[str, Any]
    ) -> AdminUserUpdateResponse:
        """
        Activate or deactivate a user.

        Args:
            admin: Profile of the admin making the change
            user_id: Profile ID to update
            request: Body carrying ``is_active``

        Raises:
            InvalidDataError: If the flag is missing or the admin targets themself
            UserNotFoundError: If no profile has that ID
        """
        is_active = request.get("is_active")
        if not isinstance(is_active, bool):
            raise InvalidDataError("is_active must be a boolean")

        if user_id == admin.id and not is_active:
            raise InvalidDataError("You cannot deactivate your own account")

        updated = await self._update_profile(user_id, {"isActive": is_active})
        if not updated:
            raise UserNotFoundError()

        logger.info(
            f"Admin {admin.id} {'activated' if is_active else 'deactivated'} "
            f"user {user_id}"
        )
        return AdminUserUpdateResponse(
            success=True,
            user=AdminUserResponse.from_prisma(updated),
            message=f"User {'activated' if is_active else 'deactivated'} successfully",
        )

    async def set_role(
        self, admin: Profile, user_id: str, request: Dict[str, Any]
    ) -> AdminUserUpdateResponse:
        """
        Change a user's role between ``user`` and ``admin``.

        Raises:
            InvalidDataError: If the role is unknown or an admin demotes themself
            UserNotFoundError: If no profile has that ID
        """
        role = request.get("role")
        if role not in (UserRole.user.value, UserRole.admin.value):
            raise InvalidDataError("Invalid role. Must be 'user' or 'admin'")

        if user_id == admin.id and role == UserRole.user.value:
            raise InvalidDataError(
                "You cannot change your own role from admin to user"
            )

        updated = await self._update_profile(user_id, {"role": UserRole(role)})
        if not updated:
            raise UserNotFoundError()

        logger.info(f"Admin {admin.id} set role of user {user_id} to {role}")
        return AdminUserUpdateResponse(
            success=True,
            user=AdminUserResponse.from_prisma(updated),
            message=f"User role updated to {role} successfully",
        )

    async def _update_profile(
        self, user_id: str, data: Dict[str, Any]
    ) -> Optional[Profile]:
        try:
            return await self.db.profile.update(
                where={"id": user_id}, data=data  # type: ignore[arg-type]
            )
        except PrismaError as e:
            logger.error(f"Updating user {user_id} failed: {e}", exc_info=True)
            raise QueryFailedError(f"Failed to update user: {e}")
