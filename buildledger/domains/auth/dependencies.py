# buildledger/domains/auth/dependencies.py
import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt import PyJWKClient
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.core.settings import settings
from buildledger.shared.exceptions import InactiveProfileError, UnlinkedProfileError
from prisma import Prisma

from .types import SupabaseJwtPayload

JWKS_URL = f"{settings.SUPABASE_URL}/auth/v1/jwks" if settings.SUPABASE_URL else None

_jwks_client = PyJWKClient(JWKS_URL) if JWKS_URL else None


def decode_supabase_jwt(token: str) -> SupabaseJwtPayload:
    """
    Verifies JWT token. Uses JWT_SECRET (HS256) when configured,
    otherwise falls back to the Supabase JWKS endpoint (RS256).
    """
    if settings.JWT_SECRET:
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET,
                algorithms=["HS256"],
                options={"verify_aud": False},
            )
            return SupabaseJwtPayload(**dict(payload))
        except jwt.PyJWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired token",
            )

    if not _jwks_client:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Supabase not configured",
        )
    try:
        signing_key = _jwks_client.get_signing_key_from_jwt(token).key
        payload = jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            options={"verify_aud": False},
        )
        return SupabaseJwtPayload(**dict(payload))
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_auth_id(authorization: str = Header(None)) -> str:
    """
    Extracts and validates the Supabase JWT from the Authorization header.
    Returns the user's UUID (from the `sub` claim).
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token"
        )

    token = authorization.split(" ")[1]
    payload = decode_supabase_jwt(token)
    if not payload.sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token"
        )
    return payload.sub


async def get_current_profile(
    auth_id: str = Depends(get_auth_id), db: Prisma = Depends(get_db)
) -> Profile:
    """
    Finds the profile for the authenticated user. Deactivated users are rejected.
    """
    profile = await db.profile.find_unique(where={"id": auth_id})
    if not profile:
        raise UnlinkedProfileError()
    if not profile.isActive:
        raise InactiveProfileError()
    return profile
