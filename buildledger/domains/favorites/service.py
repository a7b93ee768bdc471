import logging
from typing import Any, Dict

from prisma.errors import (
    ForeignKeyViolationError,
    PrismaError,
    UniqueViolationError,
)

from buildledger.domains.favorites.models import (
    FavoriteChangeResponse,
    FavoriteDepartmentsResponse,
)
from buildledger.shared.exceptions import (
    DepartmentNotFoundError,
    InvalidDataError,
    QueryFailedError,
)
from prisma import Prisma

logger = logging.getLogger(__name__)


class FavoriteService:
    """Pinned departments for a user."""

    def __init__(self, db: Prisma):
        self.db = db

    async def list_favorites(self, user_id: str) -> FavoriteDepartmentsResponse:
        try:
            favorites = await self.db.userfavoritedepartment.find_many(
                where={"userId": user_id}, order={"createdAt": "asc"}
            )
        except PrismaError as e:
            logger.error(f"Favorites lookup failed: {e}", exc_info=True)
            raise QueryFailedError(f"Failed to fetch favorites: {e}")
        return FavoriteDepartmentsResponse(
            favoriteIds=[favorite.departmentId for favorite in favorites]
        )

    async def add_favorite(
        self, user_id: str, request: Dict[str, Any]
    ) -> FavoriteChangeResponse:
        """
        Pin a department. Pinning an already pinned department succeeds.

        Raises:
            InvalidDataError: If ``departmentId`` is missing
            DepartmentNotFoundError: If the department does not exist
            QueryFailedError: If the insert fails for any other reason
        """
        department_id = request.get("departmentId")
        if not department_id or not isinstance(department_id, str):
            raise InvalidDataError("departmentId is required")

        try:
            await self.db.userfavoritedepartment.create(
                data={"userId": user_id, "departmentId": department_id}
            )
        except UniqueViolationError:
            return FavoriteChangeResponse(
                success=True, message="Department already in favorites"
            )
        except ForeignKeyViolationError:
            raise DepartmentNotFoundError()
        except PrismaError as e:
            logger.error(f"Adding favorite failed: {e}", exc_info=True)
            raise QueryFailedError(f"Failed to add favorite: {e}")

        logger.info(f"User {user_id} pinned department {department_id}")
        return FavoriteChangeResponse(
            success=True, message="Department added to favorites"
        )

    async def remove_favorite(
        self, user_id: str, department_id: str | None
    ) -> FavoriteChangeResponse:
        if not department_id:
            raise InvalidDataError("departmentId is required")

        try:
            await self.db.userfavoritedepartment.delete_many(
                where={"userId": user_id, "departmentId": department_id}
            )
        except PrismaError as e:
            logger.error(f"Removing favorite failed: {e}", exc_info=True)
            raise QueryFailedError(f"Failed to remove favorite: {e}")
        return FavoriteChangeResponse(
            success=True, message="Department removed from favorites"
        )
