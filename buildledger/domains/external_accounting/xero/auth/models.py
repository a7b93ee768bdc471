# buildledger/domains/external_accounting/xero/auth/models.py
from datetime import datetime, timezone
from typing import Optional

from prisma.models import XeroConnection
from pydantic import BaseModel, Field


class ActiveConnection(BaseModel):
    """
    The single Xero connection a sync run works against.

    Resolved once per run and passed explicitly to the token manager and
    the fetcher.
    """

    id: str
    user_id: str
    tenant_id: str
    tenant_name: Optional[str] = None
    access_token: str
    refresh_token: str
    expires_at: datetime
    token_version: int = 0

    @classmethod
    def from_prisma(cls, connection: XeroConnection) -> "ActiveConnection":
        expires_at = connection.expiresAt
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return cls(
            id=connection.id,
            user_id=connection.userId,
            tenant_id=connection.tenantId,
            tenant_name=connection.tenantName,
            access_token=connection.accessToken,
            refresh_token=connection.refreshToken,
            expires_at=expires_at,
            token_version=connection.tokenVersion,
        )


class XeroAuthUrlResponse(BaseModel):
    """Response model for OAuth authorization URL generation."""

    authUrl: str = Field(..., description="Xero OAuth authorization URL")


class XeroTokenResponse(BaseModel):
    """Response from Xero token endpoint."""

    access_token: str = Field(..., description="Access token for API calls")
    refresh_token: str = Field(..., description="Refresh token for token renewal")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    token_type: str = Field(default="Bearer", description="Token type")
    scope: Optional[str] = Field(None, description="Granted scopes")


class XeroTenantInfo(BaseModel):
    """Information about a Xero tenant from connections endpoint."""

    id: str = Field(..., description="Xero connection UUID")
    tenantId: str = Field(..., description="Xero tenant ID")
    tenantName: Optional[str] = Field(None, description="Organisation name in Xero")
    tenantType: Optional[str] = Field(None, description="ORGANISATION or PRACTICE")


class XeroStateTokenPayload(BaseModel):
    """JWT payload for OAuth state token."""

    user_id: str = Field(..., description="Profile starting the connection")
    csrf_token: str = Field(..., description="CSRF protection token")
    exp: int = Field(..., description="Expiry as a Unix timestamp")
