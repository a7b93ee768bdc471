from typing import Dict

from fastapi import APIRouter, Depends
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.domains.admin.models import (
    AdminUserListResponse,
    AdminUserUpdateResponse,
)
from buildledger.domains.admin.service import AdminUserService
from buildledger.shared.permissions import Permission, require_permission
from prisma import Prisma

router = APIRouter(prefix="/admin/users", tags=["Admin"])


@router.get(
    "",
    response_model=AdminUserListResponse,
    operation_id="listUsers",
)
async def list_users(
    profile: Profile = Depends(require_permission(Permission.VIEW_USERS)),
    db: Prisma = Depends(get_db),
) -> AdminUserListResponse:
    """
    List every profile, newest first.

    Requires VIEW_USERS permission (admins only).
    """
    return await AdminUserService(db).list_users()


@router.post(
    "/{user_id}/activate",
    response_model=AdminUserUpdateResponse,
    operation_id="setUserActive",
)
async def set_user_active(
    user_id: str,
    request: Dict,
    profile: Profile = Depends(require_permission(Permission.MANAGE_USERS)),
    db: Prisma = Depends(get_db),
) -> AdminUserUpdateResponse:
    """
    Activate or deactivate a user. Admins cannot deactivate themselves.
    """
    return await AdminUserService(db).set_active(profile, user_id, request)


@router.patch(
    "/{user_id}/role",
    response_model=AdminUserUpdateResponse,
    operation_id="setUserRole",
)
async def set_user_role(
    user_id: str,
    request: Dict,
    profile: Profile = Depends(require_permission(Permission.MANAGE_USERS)),
    db: Prisma = Depends(get_db),
) -> AdminUserUpdateResponse:
    return await AdminUserService(db).set_role(profile, user_id, request)
