from typing import Optional

from fastapi import APIRouter, Depends, Query
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.domains.auth.dependencies import get_current_profile
from buildledger.domains.departments.models import (
    DepartmentDetailResponse,
    DepartmentIncomeResponse,
    UnassignedBillsResponse,
)
from buildledger.domains.departments.service import DepartmentService
from prisma import Prisma

router = APIRouter(prefix="/departments", tags=["Departments"])


@router.get(
    "/{department_id}",
    response_model=DepartmentDetailResponse,
    operation_id="getDepartment",
)
async def get_department(
    department_id: str,
    status: Optional[str] = Query(
        None, description="'paid' for PAID only, otherwise PAID and AUTHORISED"
    ),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> DepartmentDetailResponse:
    """
    Department line items, summary, stage breakdown and per-stage invoices.
    """
    return await DepartmentService(db).get_detail(profile.id, department_id, status)


@router.get(
    "/{department_id}/income",
    response_model=DepartmentIncomeResponse,
    operation_id="getDepartmentIncome",
)
async def get_department_income(
    department_id: str,
    status: Optional[str] = Query(
        None, description="'paid' for PAID only, otherwise PAID and AUTHORISED"
    ),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> DepartmentIncomeResponse:
    """Receivable invoices of a department, newest first."""
    return await DepartmentService(db).get_income(department_id, status)


@router.get(
    "/{department_id}/unassigned-bills",
    response_model=UnassignedBillsResponse,
    operation_id="getDepartmentUnassignedBills",
)
async def get_department_unassigned_bills(
    department_id: str,
    status: Optional[str] = Query(
        None, description="'paid' for PAID only, otherwise PAID and AUTHORISED"
    ),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> UnassignedBillsResponse:
    return await DepartmentService(db).get_unassigned_bills(department_id, status)
