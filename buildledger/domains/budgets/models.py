from decimal import Decimal
from typing import Optional

from prisma.models import BudgetSummaryStage
from pydantic import BaseModel

from buildledger.domains.expenses.models import Money


class BudgetResponse(BaseModel):
    """Budget triple for one department stage"""

    budgeted_amount: Money = Decimal("0")
    actual_cost: Money = Decimal("0")
    remaining: Money = Decimal("0")

    @classmethod
    def from_prisma(cls, budget: Optional[BudgetSummaryStage]) -> "BudgetResponse":
        if not budget:
            return cls()
        return cls(
            budgeted_amount=budget.budgetedAmount,
            actual_cost=budget.actualCost,
            remaining=budget.remaining,
        )


class BudgetUpdateResponse(BaseModel):
    success: bool
    budget: BudgetResponse
