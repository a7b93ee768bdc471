"""Sources of per-department totals.

Both sources return the same typed ``DepartmentTotals`` records. The summary
view only covers the default status set; the raw source covers any set.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from prisma import Prisma
from prisma.errors import RawQueryError

from .aggregation import (
    DEFAULT_STATUSES,
    fold_department_totals,
    statuses_for_filter,
)
from .models import DepartmentRef, DepartmentTotals, LineItemRecord
from .views import SUMMARY_VIEW, fetch_department_summary_rows

logger = logging.getLogger(__name__)


class DepartmentTotalsSource(ABC):
    """Provides department totals for a set of invoice statuses."""

    def __init__(self, db: Prisma):
        self.db = db

    @abstractmethod
    async def department_totals(
        self, statuses: Sequence[str]
    ) -> List[DepartmentTotals]:
        """
        Totals for every department, ordered by department name.

        Args:
            statuses: Invoice statuses whose line items count

        Returns:
            One DepartmentTotals per department
        """
        pass


class RawLineItemSource(DepartmentTotalsSource):
    """Folds line items in Python."""

    async def department_totals(
        self, statuses: Sequence[str]
    ) -> List[DepartmentTotals]:
        departments = await self.db.department.find_many(order={"name": "asc"})
        items = await self.db.invoicelineitem.find_many(
            where={
                "departmentId": {"not": None},
                "invoice": {"is": {"status": {"in": list(statuses)}}},
            },
            include={"invoice": True},
        )
        return fold_department_totals(
            [DepartmentRef(id=d.id, name=d.name, status=d.status) for d in departments],
            [LineItemRecord.from_prisma(item) for item in items],
            statuses,
        )


class MaterializedSummarySource(DepartmentTotalsSource):
    """
    Reads the precomputed ``department_expense_summary`` view.

    Falls back to folding raw line items when the view cannot be read, for
    instance before it has been created.
    """

    async def department_totals(
        self, statuses: Sequence[str]
    ) -> List[DepartmentTotals]:
        if tuple(statuses) != DEFAULT_STATUSES:
            raise ValueError(
                f"Summary view only covers statuses {DEFAULT_STATUSES}, "
                f"got {tuple(statuses)}"
            )
        try:
            rows = await fetch_department_summary_rows(self.db)
        except RawQueryError as e:
            logger.warning(
                f"Reading {SUMMARY_VIEW} failed, folding line items instead: {e}"
            )
            return await RawLineItemSource(self.db).department_totals(statuses)
        return [DepartmentTotals.from_view_row(row) for row in rows]


def source_for_filter(
    status_filter: Optional[str], db: Prisma
) -> DepartmentTotalsSource:
    if statuses_for_filter(status_filter) == DEFAULT_STATUSES:
        return MaterializedSummarySource(db)
    return RawLineItemSource(db)
