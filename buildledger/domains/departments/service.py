import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from prisma.errors import PrismaError
from prisma.models import Department

from buildledger.core.settings import settings
from buildledger.domains.budgets.service import BudgetService
from buildledger.domains.departments.models import (
    DepartmentDetailResponse,
    DepartmentIncomeResponse,
    DepartmentInfo,
    IncomeSummary,
    LineItemResponse,
    UnassignedBillsResponse,
    UnassignedBillsSummary,
)
from buildledger.domains.expenses.aggregation import (
    EXPENSE_TYPE,
    INCOME_TYPE,
    build_stage_breakdown,
    group_by_invoice,
    group_stage_invoices,
    is_unassigned_bill,
    normalize_status_filter,
    statuses_for_filter,
    summarize_department,
)
from buildledger.domains.expenses.models import LineItemRecord
from buildledger.shared.exceptions import DepartmentNotFoundError, QueryFailedError
from prisma import Prisma

logger = logging.getLogger(__name__)


class DepartmentService:
    """Per-department financial views."""

    def __init__(self, db: Prisma):
        self.db = db

    async def get_department(self, department_id: str) -> Department:
        try:
            department = await self.db.department.find_unique(
                where={"id": department_id}
            )
        except PrismaError as e:
            raise QueryFailedError(f"Department query failed: {e}")
        if not department:
            raise DepartmentNotFoundError()
        return department

    async def get_line_items(
        self,
        department_id: str,
        statuses: Sequence[str],
        invoice_type: Optional[str] = None,
    ) -> List[LineItemRecord]:
        """Line items of a department, newest first, joined with invoice and stage."""
        invoice_where: Dict[str, Any] = {"status": {"in": list(statuses)}}
        if invoice_type:
            invoice_where["type"] = invoice_type

        where: Dict[str, Any] = {
            "departmentId": department_id,
            "invoice": {"is": invoice_where},
        }
        try:
            items = await self.db.invoicelineitem.find_many(
                where=where,  # type: ignore[arg-type]
                include={"invoice": True, "stage": True},
                order={"createdAt": "desc"},
            )
        except PrismaError as e:
            raise QueryFailedError(f"Line items query failed: {e}")
        return [LineItemRecord.from_prisma(item) for item in items]

    async def get_detail(
        self, user_id: str, department_id: str, status_filter: Optional[str]
    ) -> DepartmentDetailResponse:
        """
        Everything the department page shows.

        Args:
            user_id: Caller whose stage budgets are joined in
            department_id: Department to report on
            status_filter: ``paid`` or ``paid_authorized`` (default)

        Returns:
            DepartmentDetailResponse with line items, summary, stage breakdown
            and payable invoices per stage

        Raises:
            DepartmentNotFoundError: If the department does not exist
            QueryFailedError: If a query fails
        """
        department = await self.get_department(department_id)
        records = await self.get_line_items(
            department_id, statuses_for_filter(status_filter)
        )
        try:
            budget_map = await BudgetService(self.db).get_budget_map(
                user_id, department_id
            )
        except PrismaError as e:
            raise QueryFailedError(f"Budget query failed: {e}")

        logger.debug(
            f"Department {department_id}: {len(records)} line items "
            f"for filter {normalize_status_filter(status_filter)}"
        )
        return DepartmentDetailResponse(
            department=DepartmentInfo.from_prisma(department),
            statusFilter=normalize_status_filter(status_filter),
            lineItems=[LineItemResponse.from_record(record) for record in records],
            summary=summarize_department(records, settings.OVERHEADS_STAGE_NAME),
            stageBreakdown=build_stage_breakdown(department_id, records, budget_map),
            stageInvoices=group_stage_invoices(records),
        )

    async def get_income(
        self, department_id: str, status_filter: Optional[str]
    ) -> DepartmentIncomeResponse:
        department = await self.get_department(department_id)
        records = await self.get_line_items(
            department_id, statuses_for_filter(status_filter), INCOME_TYPE
        )
        invoices = group_by_invoice(records)
        return DepartmentIncomeResponse(
            invoices=invoices,
            summary=IncomeSummary(
                total_income=sum((i.total_amount for i in invoices), Decimal("0")),
                invoice_count=len(invoices),
                department_name=department.name,
            ),
        )

    async def get_unassigned_bills(
        self, department_id: str, status_filter: Optional[str]
    ) -> UnassignedBillsResponse:
        """Payable line items with no stage, rolled up by invoice."""
        department = await self.get_department(department_id)
        records = await self.get_line_items(
            department_id, statuses_for_filter(status_filter), EXPENSE_TYPE
        )
        bills = group_by_invoice(r for r in records if is_unassigned_bill(r))
        return UnassignedBillsResponse(
            bills=bills,
            summary=UnassignedBillsSummary(
                total_bills=len(bills),
                total_amount=sum((b.total_amount for b in bills), Decimal("0")),
                department_name=department.name,
            ),
        )
