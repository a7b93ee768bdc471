# buildledger/domains/auth/models.py
from datetime import datetime
from typing import Optional

from prisma.models import Profile
from pydantic import BaseModel


class SessionState(BaseModel):
    """The signed-in user's profile as the dashboard sees it."""

    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    is_admin: bool
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_prisma(cls, profile: Profile) -> "SessionState":
        role = profile.role.value if hasattr(profile.role, "value") else profile.role
        return cls(
            user_id=profile.id,
            email=profile.email,
            full_name=profile.fullName,
            role=str(role),
            is_admin=str(role) == "admin",
            is_active=profile.isActive,
            created_at=profile.createdAt,
        )
