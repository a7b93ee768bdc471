"""
Tests for stage budget validation and writes.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import HTTPException
from prisma.errors import DataError, PrismaError
from prisma.models import BudgetSummaryStage, Department, Stage

from buildledger.domains.budgets.service import (
    INVALID_BUDGET_MESSAGE,
    BudgetService,
    parse_budgeted_amount,
)
from buildledger.shared.exceptions import (
    DepartmentNotFoundError,
    InvalidDataError,
    QueryFailedError,
    StageNotFoundError,
)
from tests.fixtures.expenses_fixtures import (
    DEPT_A,
    STAGE_FRAMING,
    make_prisma_line_item,
    make_record,
)


def _stored_budget(budgeted: str, actual: str) -> Mock:
    budget = Mock(spec=BudgetSummaryStage)
    budget.departmentId = DEPT_A
    budget.stageId = STAGE_FRAMING
    budget.budgetedAmount = Decimal(budgeted)
    budget.actualCost = Decimal(actual)
    budget.remaining = Decimal(budgeted) - Decimal(actual)
    return budget


@pytest.fixture
def budget_prisma(mock_prisma: Mock) -> Mock:
    mock_prisma.department.find_unique = AsyncMock(return_value=Mock(spec=Department))
    mock_prisma.stage.find_unique = AsyncMock(return_value=Mock(spec=Stage))
    mock_prisma.invoicelineitem.find_many = AsyncMock(
        return_value=[
            make_prisma_line_item(make_record("a", "1000", stage_id=STAGE_FRAMING)),
            make_prisma_line_item(make_record("b", "250.50", stage_id=STAGE_FRAMING)),
        ]
    )
    return mock_prisma


class TestParseBudgetedAmount:
    @pytest.mark.parametrize("value", [0, 5000, 1234.56, 999_999_999_999.99])
    def test_accepts_non_negative_numbers(self, value):
        assert parse_budgeted_amount({"budgeted_amount": value}) == Decimal(str(value))

    @pytest.mark.parametrize(
        "body",
        [
            {"budgeted_amount": -1},
            {"budgeted_amount": "5000"},
            {"budgeted_amount": True},
            {"budgeted_amount": None},
            {"budgeted_amount": float("nan")},
            {"budgeted_amount": 10**12},
            {"budgeted_amount": 1e15},
            {},
        ],
    )
    def test_rejects_invalid_amounts(self, body):
        with pytest.raises(InvalidDataError) as exc_info:
            parse_budgeted_amount(body)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == INVALID_BUDGET_MESSAGE


class TestBudgetService:
    @pytest.mark.asyncio
    async def test_missing_budget_reads_as_zeros(self, mock_prisma: Mock):
        budget = await BudgetService(mock_prisma).get_budget(
            "user-1", DEPT_A, STAGE_FRAMING
        )

        assert budget.budgeted_amount == Decimal("0")
        assert budget.actual_cost == Decimal("0")
        assert budget.remaining == Decimal("0")

    @pytest.mark.asyncio
    async def test_update_recomputes_actual_cost_and_upserts(
        self, budget_prisma: Mock
    ):
        budget_prisma.budgetsummarystage.upsert = AsyncMock(
            return_value=_stored_budget("5000", "1250.50")
        )

        result = await BudgetService(budget_prisma).update_budget(
            "user-1", DEPT_A, STAGE_FRAMING, {"budgeted_amount": 5000}
        )

        assert result.success is True
        assert result.budget.remaining == Decimal("3749.50")

        kwargs = budget_prisma.budgetsummarystage.upsert.call_args[1]
        assert kwargs["where"] == {
            "userId_departmentId_stageId": {
                "userId": "user-1",
                "departmentId": DEPT_A,
                "stageId": STAGE_FRAMING,
            }
        }
        update = kwargs["data"]["update"]
        assert update["budgetedAmount"] == Decimal("5000")
        assert update["actualCost"] == Decimal("1250.50")
        assert update["remaining"] == Decimal("3749.50")
        assert "userId" not in update

    @pytest.mark.asyncio
    async def test_actual_cost_counts_paid_and_authorised_bills_only(
        self, budget_prisma: Mock
    ):
        await BudgetService(budget_prisma).compute_actual_cost(DEPT_A, STAGE_FRAMING)

        where = budget_prisma.invoicelineitem.find_many.call_args[1]["where"]
        assert where["invoice"] == {
            "is": {"type": "ACCPAY", "status": {"in": ["PAID", "AUTHORISED"]}}
        }

    @pytest.mark.asyncio
    async def test_repeated_update_writes_same_row(self, budget_prisma: Mock):
        budget_prisma.budgetsummarystage.upsert = AsyncMock(
            return_value=_stored_budget("5000", "1250.50")
        )
        service = BudgetService(budget_prisma)

        first = await service.update_budget(
            "user-1", DEPT_A, STAGE_FRAMING, {"budgeted_amount": 5000}
        )
        second = await service.update_budget(
            "user-1", DEPT_A, STAGE_FRAMING, {"budgeted_amount": 5000}
        )

        assert first == second
        calls = budget_prisma.budgetsummarystage.upsert.call_args_list
        assert calls[0][1]["where"] == calls[1][1]["where"]

    @pytest.mark.asyncio
    async def test_unknown_department_is_404(self, budget_prisma: Mock):
        budget_prisma.department.find_unique = AsyncMock(return_value=None)

        with pytest.raises(DepartmentNotFoundError):
            await BudgetService(budget_prisma).update_budget(
                "user-1", "missing", STAGE_FRAMING, {"budgeted_amount": 10}
            )

        budget_prisma.budgetsummarystage.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_stage_is_404(self, budget_prisma: Mock):
        budget_prisma.stage.find_unique = AsyncMock(return_value=None)

        with pytest.raises(StageNotFoundError):
            await BudgetService(budget_prisma).update_budget(
                "user-1", DEPT_A, "missing", {"budgeted_amount": 10}
            )

    @pytest.mark.asyncio
    async def test_validation_runs_before_any_query(self, budget_prisma: Mock):
        with pytest.raises(HTTPException):
            await BudgetService(budget_prisma).update_budget(
                "user-1", DEPT_A, STAGE_FRAMING, {"budgeted_amount": -5}
            )

        budget_prisma.department.find_unique.assert_not_called()

    @pytest.mark.asyncio
    async def test_budget_map_keys(self, mock_prisma: Mock):
        mock_prisma.budgetsummarystage.find_many = AsyncMock(
            return_value=[_stored_budget("800", "0")]
        )

        budget_map = await BudgetService(mock_prisma).get_budget_map("user-1", DEPT_A)

        assert budget_map == {(DEPT_A, STAGE_FRAMING): Decimal("800")}
        mock_prisma.budgetsummarystage.find_many.assert_awaited_once_with(
            where={"userId": "user-1", "departmentId": DEPT_A}
        )


class TestBudgetQueryFailures:
    @pytest.mark.asyncio
    async def test_lookup_failure_is_400_with_message(self, mock_prisma: Mock):
        mock_prisma.budgetsummarystage.find_unique = AsyncMock(
            side_effect=PrismaError("connection reset")
        )

        with pytest.raises(QueryFailedError) as exc_info:
            await BudgetService(mock_prisma).get_budget("user-1", DEPT_A, STAGE_FRAMING)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Failed to fetch budget: connection reset"

    @pytest.mark.asyncio
    async def test_malformed_id_is_400_with_message(self, budget_prisma: Mock):
        message = "Error creating UUID, invalid character"
        budget_prisma.department.find_unique = AsyncMock(
            side_effect=DataError({"user_facing_error": {"message": message}})
        )

        with pytest.raises(QueryFailedError) as exc_info:
            await BudgetService(budget_prisma).update_budget(
                "user-1", "not-a-uuid", STAGE_FRAMING, {"budgeted_amount": 10}
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail.startswith("Failed to update budget: ")
        assert message in exc_info.value.detail
        budget_prisma.budgetsummarystage.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_upsert_failure_is_400(self, budget_prisma: Mock):
        budget_prisma.budgetsummarystage.upsert = AsyncMock(
            side_effect=PrismaError("numeric field overflow")
        )

        with pytest.raises(QueryFailedError) as exc_info:
            await BudgetService(budget_prisma).update_budget(
                "user-1", DEPT_A, STAGE_FRAMING, {"budgeted_amount": 10}
            )

        assert exc_info.value.detail == (
            "Failed to update budget: numeric field overflow"
        )
