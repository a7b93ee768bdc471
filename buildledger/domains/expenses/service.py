import logging
from datetime import date, datetime, time, timezone
from typing import List, Optional

from prisma.errors import PrismaError

from buildledger.core.settings import settings
from buildledger.domains.budgets.service import BudgetService
from buildledger.shared.exceptions import QueryFailedError
from prisma import Prisma

from .aggregation import (
    EXPENSE_TYPE,
    build_department_overviews,
    build_overall_totals,
    normalize_status_filter,
    statuses_for_filter,
    summarize_invoices,
)
from .models import (
    ExpensesOverviewResponse,
    LineItemRecord,
    PeriodSnapshotResponse,
    SnapshotInvoice,
)
from .sources import source_for_filter

logger = logging.getLogger(__name__)


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class ExpensesService:
    """Cross-department financial overview and period snapshots."""

    def __init__(self, db: Prisma):
        self.db = db
        self.overheads_stage_name = settings.OVERHEADS_STAGE_NAME

    async def get_overview(
        self, user_id: str, status_filter: Optional[str]
    ) -> ExpensesOverviewResponse:
        """
        Build the department overview for the expenses dashboard.

        The default filter reads department totals from the summary view;
        ``paid`` folds raw line items. Stage spend, unassigned bills and
        overheads always come from payable line items.

        Args:
            user_id: Caller whose stage budgets are joined in
            status_filter: ``paid`` or ``paid_authorized`` (default)

        Returns:
            ExpensesOverviewResponse with departments and overall totals

        Raises:
            QueryFailedError: If any query fails
        """
        statuses = statuses_for_filter(status_filter)
        source = source_for_filter(status_filter, self.db)

        try:
            budget_map = await BudgetService(self.db).get_budget_map(user_id)
            totals = await source.department_totals(statuses)
            expense_items = await self.db.invoicelineitem.find_many(
                where={
                    "departmentId": {"not": None},
                    "invoice": {
                        "is": {"type": EXPENSE_TYPE, "status": {"in": list(statuses)}}
                    },
                },
                include={"invoice": True, "stage": True},
            )
        except PrismaError as e:
            logger.error(f"Expenses overview query failed: {e}", exc_info=True)
            raise QueryFailedError(f"Expenses query failed: {e}")

        records = [LineItemRecord.from_prisma(item) for item in expense_items]
        departments = build_department_overviews(
            totals, records, budget_map, self.overheads_stage_name
        )

        logger.info(
            f"Expenses overview ({type(source).__name__}): "
            f"{len(departments)} departments, {len(records)} payable line items"
        )
        return ExpensesOverviewResponse(
            departments=departments,
            overallStats=build_overall_totals(departments),
            statusFilter=normalize_status_filter(status_filter),
        )

    async def get_period_snapshot(
        self,
        period: str,
        start: date,
        end: date,
        status_filter: Optional[str],
    ) -> PeriodSnapshotResponse:
        """
        Invoices dated in ``[start, end)`` with their line items.

        Totals are taken from invoice totals, not line items.
        """
        statuses = statuses_for_filter(status_filter)
        try:
            invoices = await self.db.invoice.find_many(
                where={
                    "invoiceDate": {"gte": _start_of(start), "lt": _start_of(end)},
                    "status": {"in": list(statuses)},
                },
                include={"lineItems": {"include": {"department": True, "stage": True}}},
                order=[
                    {"invoiceDate": "asc"},
                    {"type": "desc"},
                    {"contactName": "asc"},
                ],
            )
        except PrismaError as e:
            logger.error(f"{period} snapshot query failed: {e}", exc_info=True)
            raise QueryFailedError(f"Snapshot query failed: {e}")

        snapshot: List[SnapshotInvoice] = [
            SnapshotInvoice.from_prisma(invoice) for invoice in invoices
        ]
        return PeriodSnapshotResponse(
            period=period,
            period_start=start,
            period_end=end,
            statusFilter=normalize_status_filter(status_filter),
            invoices=snapshot,
            summary=summarize_invoices(snapshot),
        )
