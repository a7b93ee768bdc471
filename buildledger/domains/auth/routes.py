# buildledger/domains/auth/routes.py
from fastapi import APIRouter, Depends
from prisma.models import Profile

from buildledger.domains.auth.dependencies import get_current_profile
from buildledger.domains.auth.models import SessionState
from buildledger.domains.auth.service import SessionService

router = APIRouter(prefix="/session", tags=["Sessions"])


@router.get(
    "",
    response_model=SessionState,
    operation_id="getSessionState",
)
async def get_session_state(
    profile: Profile = Depends(get_current_profile),
) -> SessionState:
    return SessionService().get_session_state(profile)
