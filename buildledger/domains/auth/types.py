"""Claims carried by a Supabase access token."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SupabaseJwtPayload(BaseModel):
    """
    Decoded Supabase JWT.

    Only ``sub`` is needed to resolve a profile; the rest are kept for
    logging and future use. Unknown claims are allowed.
    """

    sub: Optional[str] = Field(None, description="Supabase auth user id")
    email: Optional[str] = Field(None, description="User email address")
    role: Optional[str] = Field(None, description="Postgres role, e.g. authenticated")
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")
    session_id: Optional[str] = Field(None, description="Session identifier")
    app_metadata: Dict[str, Any] = Field(default_factory=dict)
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}
