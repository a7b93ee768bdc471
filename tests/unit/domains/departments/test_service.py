"""
Tests for department detail, income and unassigned bills.
"""

from decimal import Decimal
from typing import List
from unittest.mock import AsyncMock, Mock

import pytest
from prisma.errors import PrismaError

from buildledger.domains.departments.service import DepartmentService
from buildledger.domains.expenses.aggregation import DEFAULT_STATUSES
from buildledger.domains.expenses.models import LineItemRecord
from buildledger.shared.exceptions import DepartmentNotFoundError, QueryFailedError
from tests.fixtures.expenses_fixtures import (
    DEPT_A,
    STAGE_FRAMING,
    make_prisma_department,
    make_prisma_line_item,
)


def _department_a_items(
    records: List[LineItemRecord], invoice_type: str | None = None
) -> List[Mock]:
    return [
        make_prisma_line_item(r)
        for r in records
        if r.department_id == DEPT_A
        and r.invoice.status in DEFAULT_STATUSES
        and (invoice_type is None or r.invoice.type == invoice_type)
    ]


@pytest.fixture
def department_prisma(mock_prisma: Mock) -> Mock:
    mock_prisma.department.find_unique = AsyncMock(
        return_value=make_prisma_department(DEPT_A, "Alpha Street")
    )
    return mock_prisma


class TestDepartmentDetail:
    @pytest.mark.asyncio
    async def test_detail_combines_summary_and_stages(
        self, department_prisma: Mock, mixed_line_items: List[LineItemRecord]
    ):
        department_prisma.invoicelineitem.find_many = AsyncMock(
            return_value=_department_a_items(mixed_line_items)
        )

        detail = await DepartmentService(department_prisma).get_detail(
            "test-user-id-123", DEPT_A, None
        )

        assert detail.department.name == "Alpha Street"
        assert detail.statusFilter == "paid_authorized"
        assert len(detail.lineItems) == 7
        assert detail.summary.net_profit == Decimal("15500")
        assert detail.summary.overheads == Decimal("300")
        assert [s.stage_id for s in detail.stageBreakdown][0] == STAGE_FRAMING
        assert STAGE_FRAMING in detail.stageInvoices

        kwargs = department_prisma.invoicelineitem.find_many.call_args[1]
        assert kwargs["where"] == {
            "departmentId": DEPT_A,
            "invoice": {"is": {"status": {"in": ["PAID", "AUTHORISED"]}}},
        }
        assert kwargs["include"] == {"invoice": True, "stage": True}

    @pytest.mark.asyncio
    async def test_line_items_fill_display_defaults(self, department_prisma: Mock):
        item = Mock()
        item.id = "li-1"
        item.departmentId = DEPT_A
        item.stageId = None
        item.description = None
        item.quantity = None
        item.unitAmount = None
        item.lineAmount = Decimal("12.50")
        item.taxAmount = None
        item.createdAt = None
        item.stage = None
        item.department = None
        item.invoice = Mock(
            id="inv-1",
            xeroInvoiceId="xero-inv-1",
            type="ACCPAY",
            status="PAID",
            invoiceDate=None,
            contactName=None,
            reference=None,
            total=Decimal("12.50"),
        )
        department_prisma.invoicelineitem.find_many = AsyncMock(return_value=[item])

        detail = await DepartmentService(department_prisma).get_detail(
            "test-user-id-123", DEPT_A, "paid"
        )

        line = detail.lineItems[0]
        assert line.description == "No description"
        assert line.contact_name == "Unknown Contact"
        assert line.quantity == Decimal("1")
        assert detail.statusFilter == "paid"

    @pytest.mark.asyncio
    async def test_missing_department_is_404(self, mock_prisma: Mock):
        with pytest.raises(DepartmentNotFoundError):
            await DepartmentService(mock_prisma).get_detail("user", "missing", None)

    @pytest.mark.asyncio
    async def test_query_failure_is_400(self, department_prisma: Mock):
        department_prisma.invoicelineitem.find_many = AsyncMock(
            side_effect=PrismaError("connection reset")
        )

        with pytest.raises(QueryFailedError) as exc_info:
            await DepartmentService(department_prisma).get_detail("user", DEPT_A, None)

        assert exc_info.value.status_code == 400
        assert "connection reset" in exc_info.value.detail


class TestIncomeAndUnassignedBills:
    @pytest.mark.asyncio
    async def test_income_groups_receivables_by_invoice(
        self, department_prisma: Mock, mixed_line_items: List[LineItemRecord]
    ):
        department_prisma.invoicelineitem.find_many = AsyncMock(
            return_value=_department_a_items(mixed_line_items, "ACCREC")
        )

        income = await DepartmentService(department_prisma).get_income(DEPT_A, None)

        assert income.summary.total_income == Decimal("20000")
        assert income.summary.invoice_count == 2
        assert income.summary.department_name == "Alpha Street"
        where = department_prisma.invoicelineitem.find_many.call_args[1]["where"]
        assert where["invoice"]["is"]["type"] == "ACCREC"

    @pytest.mark.asyncio
    async def test_unassigned_bills_exclude_staged_lines(
        self, department_prisma: Mock, mixed_line_items: List[LineItemRecord]
    ):
        department_prisma.invoicelineitem.find_many = AsyncMock(
            return_value=_department_a_items(mixed_line_items, "ACCPAY")
        )

        result = await DepartmentService(department_prisma).get_unassigned_bills(
            DEPT_A, None
        )

        assert result.summary.total_bills == 1
        assert result.summary.total_amount == Decimal("700")
        assert result.bills[0].xero_invoice_id == "xero-inv-un-1"
