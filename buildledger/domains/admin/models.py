from datetime import datetime
from typing import List, Optional

from prisma.models import Profile
from pydantic import BaseModel


class AdminUserResponse(BaseModel):
    """Response model for a profile in the admin user list"""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    is_active: bool
    created_at: Optional[datetime] = None
    email_confirmed_at: Optional[datetime] = None

    @classmethod
    def from_prisma(cls, profile: Profile) -> "AdminUserResponse":
        role = profile.role.value if hasattr(profile.role, "value") else profile.role
        return cls(
            id=profile.id,
            email=profile.email,
            full_name=profile.fullName,
            role=str(role),
            is_active=profile.isActive,
            created_at=profile.createdAt,
            email_confirmed_at=profile.emailConfirmedAt,
        )


class AdminUserListResponse(BaseModel):
    users: List[AdminUserResponse]


class AdminUserUpdateResponse(BaseModel):
    """Response model for activation and role changes"""

    success: bool
    user: AdminUserResponse
    message: str
