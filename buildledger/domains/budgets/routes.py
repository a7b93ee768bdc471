from typing import Dict

from fastapi import APIRouter, Depends
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.domains.auth.dependencies import get_current_profile
from buildledger.domains.budgets.models import BudgetResponse, BudgetUpdateResponse
from buildledger.domains.budgets.service import BudgetService
from prisma import Prisma

router = APIRouter(prefix="/departments", tags=["Budgets"])


@router.get(
    "/{department_id}/stages/{stage_id}/budget",
    response_model=BudgetResponse,
    operation_id="getStageBudget",
)
async def get_stage_budget(
    department_id: str,
    stage_id: str,
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> BudgetResponse:
    """
    Get the caller's budget for a department stage.

    Returns zeros when no budget has been set.
    """
    return await BudgetService(db).get_budget(profile.id, department_id, stage_id)


@router.put(
    "/{department_id}/stages/{stage_id}/budget",
    response_model=BudgetUpdateResponse,
    operation_id="updateStageBudget",
)
async def update_stage_budget(
    department_id: str,
    stage_id: str,
    request: Dict,
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> BudgetUpdateResponse:
    """
    Set the caller's budget for a department stage.

    The actual cost is recomputed from PAID and AUTHORISED bills on every
    write; the client never supplies it.
    """
    return await BudgetService(db).update_budget(
        profile.id, department_id, stage_id, request
    )
