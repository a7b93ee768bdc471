# buildledger/domains/external_accounting/xero/auth/routes.py
import logging
import secrets
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Cookie, Depends, Query, status
from fastapi.responses import JSONResponse, RedirectResponse
from prisma.errors import PrismaError
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.core.settings import settings
from buildledger.domains.auth.dependencies import get_current_profile
from buildledger.shared.exceptions import (
    IntegrationAuthenticationError,
    IntegrationConfigurationError,
    IntegrationConnectionError,
)
from prisma import Prisma

from .models import XeroAuthUrlResponse
from .service import STATE_TOKEN_TTL, XeroService

logger = logging.getLogger(__name__)

STATE_COOKIE = "xero_oauth_state"

router = APIRouter(prefix="/xero", tags=["Xero"])


def _profile_redirect(query: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"{settings.FRONTEND_URL}/profile?{query}",
        status_code=status.HTTP_302_FOUND,
    )


def _error_redirect(error_code: str) -> RedirectResponse:
    return _profile_redirect(f"xero_error={quote(error_code)}")


def _login_redirect() -> RedirectResponse:
    return RedirectResponse(
        url=f"{settings.FRONTEND_URL}/auth/login?message=authentication_required",
        status_code=status.HTTP_302_FOUND,
    )


@router.post(
    "/connect",
    response_model=XeroAuthUrlResponse,
    operation_id="startXeroConnection",
)
async def start_xero_connection(
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> JSONResponse:
    """
    Start the Xero OAuth flow for the current user.

    The state token is returned inside the authorize URL and stored in an
    httponly cookie; the callback accepts it only if both match.
    """
    auth_response, state_token = XeroService(db).build_authorization_url(profile.id)

    response = JSONResponse(content=auth_response.model_dump())
    response.set_cookie(
        STATE_COOKIE,
        state_token,
        max_age=int(STATE_TOKEN_TTL.total_seconds()),
        httponly=True,
        secure=settings.APP_BASE_URL.startswith("https://"),
        samesite="lax",
    )
    return response


@router.get(
    "/callback",
    operation_id="xeroOAuthCallback",
)
async def xero_oauth_callback(
    code: Optional[str] = Query(None, description="OAuth authorization code"),
    state: Optional[str] = Query(None, description="JWT state token"),
    error: Optional[str] = Query(None, description="OAuth error code"),
    xero_oauth_state: Optional[str] = Cookie(None),
    db: Prisma = Depends(get_db),
) -> RedirectResponse:
    """
    Handle the OAuth callback from Xero after user authorization.

    **Redirect Behavior**:
    - Success: `{FRONTEND_URL}/profile?xero_connected=true`
    - Error: `{FRONTEND_URL}/profile?xero_error={code}`
    - Unknown or inactive user: `{FRONTEND_URL}/auth/login?message=...`
    """
    try:
        if error:
            logger.warning(f"Xero OAuth error: {error}")
            return _error_redirect(error)

        if not code or not state:
            return _error_redirect("missing_parameters")

        if not xero_oauth_state or not secrets.compare_digest(xero_oauth_state, state):
            return _error_redirect("invalid_state")

        service = XeroService(db)
        try:
            state_payload = service.validate_state_token(state)
        except IntegrationAuthenticationError as e:
            logger.warning(f"Rejected Xero callback state: {e.detail}")
            return _login_redirect()

        profile = await db.profile.find_unique(where={"id": state_payload.user_id})
        if not profile or not profile.isActive:
            return _login_redirect()

        try:
            await service.complete_connection(profile.id, code)
        except IntegrationConfigurationError:
            logger.error("Missing Xero OAuth credentials")
            return _error_redirect("configuration_error")
        except (IntegrationAuthenticationError, IntegrationConnectionError) as e:
            logger.error(f"Token exchange failed: {e.detail}")
            return _error_redirect("token_exchange_failed")
        except PrismaError as e:
            logger.error(f"Database error storing Xero connection: {e}", exc_info=True)
            return _error_redirect("database_error")

        response = _profile_redirect("xero_connected=true")
        response.delete_cookie(STATE_COOKIE)
        return response

    except Exception as e:
        logger.error(f"Xero callback error: {e}", exc_info=True)
        return _error_redirect("unexpected_error")
