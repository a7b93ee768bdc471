import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from prisma.errors import PrismaError

from buildledger.domains.budgets.models import BudgetResponse, BudgetUpdateResponse
from buildledger.domains.expenses.aggregation import (
    DEFAULT_STATUSES,
    EXPENSE_TYPE,
    ZERO,
    BudgetMap,
)
from buildledger.shared.exceptions import (
    DepartmentNotFoundError,
    InvalidDataError,
    QueryFailedError,
    StageNotFoundError,
)
from prisma import Prisma

logger = logging.getLogger(__name__)

INVALID_BUDGET_MESSAGE = "Invalid budget amount. Must be a non-negative number."

# Upper bound of the Decimal(14, 2) budget columns
MAX_BUDGETED_AMOUNT = 10**12


def parse_budgeted_amount(request: Dict[str, Any]) -> Decimal:
    """
    Validate the ``budgeted_amount`` of a budget update body.

    Only JSON numbers are accepted; strings, booleans, negatives and
    non-finite values are rejected, as are amounts the budget columns cannot
    hold.
    """
    value = request.get("budgeted_amount")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidDataError(INVALID_BUDGET_MESSAGE)
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidDataError(INVALID_BUDGET_MESSAGE)
    if value < 0 or value >= MAX_BUDGETED_AMOUNT:
        raise InvalidDataError(INVALID_BUDGET_MESSAGE)
    return Decimal(str(value))


class BudgetService:
    """Reads and writes per-user stage budgets."""

    def __init__(self, db: Prisma):
        self.db = db

    async def get_budget_map(
        self, user_id: str, department_id: Optional[str] = None
    ) -> BudgetMap:
        """Budgeted amounts keyed by (department_id, stage_id) for one user."""
        where: Dict[str, Any] = {"userId": user_id}
        if department_id:
            where["departmentId"] = department_id
        budgets = await self.db.budgetsummarystage.find_many(
            where=where  # type: ignore[arg-type]
        )
        return {
            (budget.departmentId, budget.stageId): Decimal(str(budget.budgetedAmount))
            for budget in budgets
        }

    async def get_budget(
        self, user_id: str, department_id: str, stage_id: str
    ) -> BudgetResponse:
        try:
            budget = await self.db.budgetsummarystage.find_unique(
                where={
                    "userId_departmentId_stageId": {
                        "userId": user_id,
                        "departmentId": department_id,
                        "stageId": stage_id,
                    }
                }
            )
        except PrismaError as e:
            logger.error(f"Budget lookup failed: {e}", exc_info=True)
            raise QueryFailedError(f"Failed to fetch budget: {e}")
        return BudgetResponse.from_prisma(budget)

    async def compute_actual_cost(self, department_id: str, stage_id: str) -> Decimal:
        """Sum of payable PAID/AUTHORISED line amounts for one department stage."""
        items = await self.db.invoicelineitem.find_many(
            where={
                "departmentId": department_id,
                "stageId": stage_id,
                "invoice": {
                    "is": {
                        "type": EXPENSE_TYPE,
                        "status": {"in": list(DEFAULT_STATUSES)},
                    }
                },
            }
        )
        return sum((Decimal(str(item.lineAmount)) for item in items), ZERO)

    async def update_budget(
        self,
        user_id: str,
        department_id: str,
        stage_id: str,
        request: Dict[str, Any],
    ) -> BudgetUpdateResponse:
        """
        Set the budgeted amount for a stage and recompute its actual cost.

        Args:
            user_id: Owner of the budget
            department_id: Department the stage belongs to
            stage_id: Stage being budgeted
            request: Body carrying ``budgeted_amount``

        Returns:
            BudgetUpdateResponse with the stored triple

        Raises:
            InvalidDataError: If the amount is not a non-negative number
            DepartmentNotFoundError: If the department does not exist
            StageNotFoundError: If the stage does not exist
            QueryFailedError: If a database query fails
        """
        budgeted_amount = parse_budgeted_amount(request)

        try:
            department = await self.db.department.find_unique(
                where={"id": department_id}
            )
            if not department:
                raise DepartmentNotFoundError()
            stage = await self.db.stage.find_unique(where={"id": stage_id})
            if not stage:
                raise StageNotFoundError()

            actual_cost = await self.compute_actual_cost(department_id, stage_id)
            remaining = budgeted_amount - actual_cost
            now = datetime.now(timezone.utc)

            budget = await self.db.budgetsummarystage.upsert(
                where={
                    "userId_departmentId_stageId": {
                        "userId": user_id,
                        "departmentId": department_id,
                        "stageId": stage_id,
                    }
                },
                data={
                    "create": {
                        "userId": user_id,
                        "departmentId": department_id,
                        "stageId": stage_id,
                        "budgetedAmount": budgeted_amount,
                        "actualCost": actual_cost,
                        "remaining": remaining,
                        "lastUpdated": now,
                    },
                    "update": {
                        "budgetedAmount": budgeted_amount,
                        "actualCost": actual_cost,
                        "remaining": remaining,
                        "lastUpdated": now,
                    },
                },
            )
        except PrismaError as e:
            logger.error(f"Budget update failed: {e}", exc_info=True)
            raise QueryFailedError(f"Failed to update budget: {e}")

        logger.info(
            f"Budget for department {department_id} stage {stage_id} set to "
            f"{budgeted_amount} by user {user_id} (actual {actual_cost})"
        )
        return BudgetUpdateResponse(
            success=True, budget=BudgetResponse.from_prisma(budget)
        )
