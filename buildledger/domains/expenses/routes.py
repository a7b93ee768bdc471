from datetime import date, timedelta
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.domains.auth.dependencies import get_current_profile
from buildledger.shared.exceptions import InvalidDataError
from prisma import Prisma

from .models import ExpensesOverviewResponse, PeriodSnapshotResponse
from .service import ExpensesService

router = APIRouter(prefix="/expenses", tags=["Expenses"])


def _month_bounds(month: Optional[str]) -> Tuple[date, date]:
    if month is None:
        start = date.today().replace(day=1)
    else:
        try:
            year_part, month_part = month.split("-")
            start = date(int(year_part), int(month_part), 1)
        except ValueError:
            raise InvalidDataError("month must be formatted as YYYY-MM")
    # The 28th plus four days always lands in the following month
    end = (start.replace(day=28) + timedelta(days=4)).replace(day=1)
    return start, end


@router.get(
    "",
    response_model=ExpensesOverviewResponse,
    operation_id="getExpensesOverview",
)
async def get_expenses_overview(
    status: Optional[str] = Query(
        None, description="'paid' for PAID only, otherwise PAID and AUTHORISED"
    ),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> ExpensesOverviewResponse:
    """
    Per-department income, expenses and stage spend with overall totals.
    """
    return await ExpensesService(db).get_overview(profile.id, status)


@router.get(
    "/daily",
    response_model=PeriodSnapshotResponse,
    operation_id="getDailySnapshot",
)
async def get_daily_snapshot(
    day: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    status: Optional[str] = Query(None),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> PeriodSnapshotResponse:
    start = day or date.today()
    return await ExpensesService(db).get_period_snapshot(
        "daily", start, start + timedelta(days=1), status
    )


@router.get(
    "/monthly",
    response_model=PeriodSnapshotResponse,
    operation_id="getMonthlySnapshot",
)
async def get_monthly_snapshot(
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to this month"),
    status: Optional[str] = Query(None),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> PeriodSnapshotResponse:
    start, end = _month_bounds(month)
    return await ExpensesService(db).get_period_snapshot("monthly", start, end, status)


@router.get(
    "/yearly",
    response_model=PeriodSnapshotResponse,
    operation_id="getYearlySnapshot",
)
async def get_yearly_snapshot(
    year: Optional[int] = Query(None, ge=1900, le=9998),
    status: Optional[str] = Query(None),
    profile: Profile = Depends(get_current_profile),
    db: Prisma = Depends(get_db),
) -> PeriodSnapshotResponse:
    selected = year or date.today().year
    return await ExpensesService(db).get_period_snapshot(
        "yearly", date(selected, 1, 1), date(selected + 1, 1, 1), status
    )
