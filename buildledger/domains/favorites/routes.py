from typing import Dict

from fastapi import APIRouter, Depends, Query
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.domains.auth.dependencies import get_current_profile
from buildledger.domains.favorites.models import (
    FavoriteChangeResponse,
    FavoriteDepartmentsResponse,
)
from buildledger.domains.favorites.service import FavoriteService
from prisma import Prisma

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get(
    "/departments",
    response_model=FavoriteDepartmentsResponse,
    operation_id="getFavoriteDepartments",
)
async def get_favorite_departments(
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> FavoriteDepartmentsResponse:
    return await FavoriteService(db).list_favorites(profile.id)


@router.post(
    "/departments",
    response_model=FavoriteChangeResponse,
    operation_id="addFavoriteDepartment",
)
async def add_favorite_department(
    request: Dict,
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> FavoriteChangeResponse:
    """
    Pin a department for the current user.

    Adding a department that is already pinned is reported as success.
    """
    return await FavoriteService(db).add_favorite(profile.id, request)


@router.delete(
    "/departments",
    response_model=FavoriteChangeResponse,
    operation_id="removeFavoriteDepartment",
)
async def remove_favorite_department(
    departmentId: str | None = Query(None, description="Department to unpin"),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> FavoriteChangeResponse:
    return await FavoriteService(db).remove_favorite(profile.id, departmentId)
