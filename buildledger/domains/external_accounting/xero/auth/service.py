# buildledger/domains/external_accounting/xero/auth/service.py
import asyncio
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from urllib.parse import urlencode

import httpx
import jwt
from prisma.models import XeroConnection

from buildledger.core.settings import settings
from buildledger.shared.exceptions import (
    IntegrationAuthenticationError,
    IntegrationConfigurationError,
    IntegrationConnectionError,
    IntegrationTokenExpiredError,
)
from prisma import Prisma

from .models import (
    ActiveConnection,
    XeroAuthUrlResponse,
    XeroStateTokenPayload,
    XeroTenantInfo,
    XeroTokenResponse,
)

logger = logging.getLogger(__name__)

STATE_TOKEN_TTL = timedelta(minutes=10)

# One lock per connection id; refreshes within this process are serialised
_refresh_locks: Dict[str, asyncio.Lock] = {}


def _refresh_lock(connection_id: str) -> asyncio.Lock:
    lock = _refresh_locks.get(connection_id)
    if lock is None:
        lock = asyncio.Lock()
        _refresh_locks[connection_id] = lock
    return lock


def needs_refresh(connection: ActiveConnection, now: Optional[datetime] = None) -> bool:
    """True when less than the refresh margin remains before expiry."""
    now = now or datetime.now(timezone.utc)
    margin = timedelta(minutes=settings.TOKEN_REFRESH_MARGIN_MINUTES)
    return connection.expires_at - now < margin


class XeroService:
    """Service for Xero OAuth connections and token operations."""

    def __init__(self, db: Prisma):
        self.db = db
        self.client_id = settings.XERO_CLIENT_ID
        self.client_secret = settings.XERO_CLIENT_SECRET
        self.redirect_uri = (
            settings.XERO_REDIRECT_URI or f"{settings.APP_BASE_URL}/api/xero/callback"
        )
        self.scopes = settings.XERO_SCOPES

        # Xero OAuth endpoints
        self.auth_url = "https://login.xero.com/identity/connect/authorize"
        self.token_url = "https://identity.xero.com/connect/token"
        self.connections_url = "https://api.xero.com/connections"

    async def resolve_active_connection(self) -> Optional[ActiveConnection]:
        """
        Pick the connection a sync run uses.

        The most recently connected active connection owned by an admin wins.
        """
        connection = await self.db.xeroconnection.find_first(
            where={"isActive": True, "user": {"is": {"role": "admin"}}},
            order={"connectedAt": "desc"},
        )
        if not connection:
            return None
        return ActiveConnection.from_prisma(connection)

    async def get_valid_access_token(self, connection: ActiveConnection) -> str:
        """
        Get a valid access token, refreshing first if it is about to expire.

        Args:
            connection: Connection resolved for this run

        Returns:
            Access token with at least the refresh margin left

        Raises:
            IntegrationTokenExpiredError: If Xero rejects the refresh
            IntegrationConnectionError: If Xero cannot be reached
        """
        if not needs_refresh(connection):
            return connection.access_token

        async with _refresh_lock(connection.id):
            # Another task may have refreshed while we waited
            current = await self._reload(connection.id)
            if not needs_refresh(current):
                logger.info(f"Using token refreshed concurrently for {current.id}")
                return current.access_token
            return await self._refresh_access_token(current)

    def build_authorization_url(self, user_id: str) -> tuple[XeroAuthUrlResponse, str]:
        """
        Build the Xero authorize URL for a user.

        Returns:
            The URL response and the state token the caller stores in a cookie
        """
        if not self.client_id:
            raise IntegrationConfigurationError("Xero client ID not configured")

        state_token = self._generate_state_token(user_id)
        auth_params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scopes,
            "state": state_token,
        }
        auth_url = f"{self.auth_url}?{urlencode(auth_params)}"
        return XeroAuthUrlResponse(authUrl=auth_url), state_token

    def validate_state_token(self, token: str) -> XeroStateTokenPayload:
        """Validate and decode JWT state token."""
        if not settings.JWT_SECRET:
            raise IntegrationAuthenticationError("JWT secret not configured")

        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            raise IntegrationAuthenticationError(f"Invalid OAuth state token: {e}")
        return XeroStateTokenPayload(**payload)

    async def complete_connection(self, user_id: str, code: str) -> XeroConnection:
        """
        Exchange the authorization code and store the user's connection.

        Raises:
            IntegrationConfigurationError: If Xero credentials are missing
            IntegrationAuthenticationError: If the code exchange is rejected
            IntegrationConnectionError: If Xero cannot be reached or lists
                no tenant
            PrismaError: If the connection cannot be stored
        """
        if not self.client_id or not self.client_secret:
            raise IntegrationConfigurationError()

        token_response = await self._exchange_code_for_tokens(code)
        tenant_info = await self._get_tenant_info(token_response.access_token)

        now = datetime.now(timezone.utc)
        data = {
            "accessToken": token_response.access_token,
            "refreshToken": token_response.refresh_token,
            "expiresAt": now + timedelta(seconds=token_response.expires_in),
            "orgId": tenant_info.id,
            "orgName": tenant_info.tenantName,
            "tenantId": tenant_info.tenantId,
            "tenantName": tenant_info.tenantName,
            "connectedAt": now,
            "lastRefreshedAt": now,
            "isActive": True,
            "tokenVersion": 0,
        }
        connection = await self.db.xeroconnection.upsert(
            where={"userId": user_id},
            data={
                "create": {"userId": user_id, **data},  # type: ignore[typeddict-item]
                "update": data,  # type: ignore[typeddict-item]
            },
        )
        logger.info(
            f"Stored Xero connection for user {user_id} "
            f"(tenant {tenant_info.tenantName or tenant_info.tenantId})"
        )
        return connection

    async def _reload(self, connection_id: str) -> ActiveConnection:
        connection = await self.db.xeroconnection.find_unique(
            where={"id": connection_id}
        )
        if not connection:
            raise IntegrationConnectionError("Xero connection no longer exists")
        return ActiveConnection.from_prisma(connection)

    def _generate_state_token(self, user_id: str) -> str:
        """Generate JWT state token for OAuth flow."""
        if not settings.JWT_SECRET:
            raise IntegrationAuthenticationError("JWT secret not configured")

        expires_at = datetime.now(timezone.utc) + STATE_TOKEN_TTL
        payload = XeroStateTokenPayload(
            user_id=user_id,
            csrf_token=secrets.token_urlsafe(32),
            exp=int(expires_at.timestamp()),
        )
        return jwt.encode(payload.model_dump(), settings.JWT_SECRET, algorithm="HS256")

    async def _exchange_code_for_tokens(self, code: str) -> XeroTokenResponse:
        """Exchange OAuth authorization code for access tokens."""
        token_data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.token_url,
                    data=token_data,
                    auth=(self.client_id or "", self.client_secret or ""),
                    timeout=30.0,
                )
                response.raise_for_status()
                return XeroTokenResponse(**response.json())
            except httpx.HTTPStatusError as e:
                raise IntegrationAuthenticationError(
                    f"Token exchange failed: {e.response.text}"
                )
            except httpx.RequestError as e:
                raise IntegrationConnectionError(f"Token exchange request failed: {e}")

    async def _get_tenant_info(self, access_token: str) -> XeroTenantInfo:
        """Get tenant information from Xero connections endpoint."""
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    self.connections_url, headers=headers, timeout=30.0
                )
                response.raise_for_status()
                connections = response.json()
            except httpx.HTTPStatusError as e:
                raise IntegrationConnectionError(
                    f"Failed to get tenant info: {e.response.text}"
                )
            except httpx.RequestError as e:
                raise IntegrationConnectionError(f"Tenant info request failed: {e}")

        if not connections:
            raise IntegrationConnectionError("No Xero tenant found for this connection")

        # First tenant is the one just authorised
        return XeroTenantInfo(**connections[0])

    async def _refresh_access_token(self, connection: ActiveConnection) -> str:
        """
        Refresh the access token and store it with a version check.

        Nothing is written unless Xero issued a new token. If another process
        stored a token first, the stored token is used instead of ours.
        """
        if not self.client_id or not self.client_secret:
            raise IntegrationConfigurationError()

        refresh_data = {
            "grant_type": "refresh_token",
            "refresh_token": connection.refresh_token,
        }

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.token_url,
                    data=refresh_data,
                    auth=(self.client_id, self.client_secret),
                    timeout=30.0,
                )
                response.raise_for_status()
                token_response = XeroTokenResponse(**response.json())
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"Token refresh rejected for connection {connection.id}: "
                    f"{e.response.status_code}"
                )
                raise IntegrationTokenExpiredError(
                    f"Token refresh failed: {e.response.text}"
                )
            except httpx.RequestError as e:
                raise IntegrationConnectionError(f"Token refresh request failed: {e}")

        now = datetime.now(timezone.utc)
        updated = await self.db.xeroconnection.update_many(
            where={"id": connection.id, "tokenVersion": connection.token_version},
            data={
                "accessToken": token_response.access_token,
                "refreshToken": token_response.refresh_token,
                "expiresAt": now + timedelta(seconds=token_response.expires_in),
                "lastRefreshedAt": now,
                "tokenVersion": connection.token_version + 1,
            },
        )

        if updated == 0:
            winner = await self._reload(connection.id)
            logger.warning(
                f"Token for connection {connection.id} was refreshed elsewhere "
                f"(version {winner.token_version}), using stored token"
            )
            return winner.access_token

        logger.info(f"Refreshed Xero access token for connection {connection.id}")
        return token_response.access_token
