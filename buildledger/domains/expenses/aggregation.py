"""Canonical income/expense classification and folding.

Every report in the API (department overview, department detail, income and
unassigned-bill lists, period snapshots) is computed with these functions,
and the SQL of the ``department_expense_summary`` view is rendered from the
same constants, so both sources classify and filter identically.
"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import (
    DepartmentDetailSummary,
    DepartmentOverview,
    DepartmentRef,
    DepartmentTotals,
    InvoiceRollup,
    LineItemRecord,
    OverallTotals,
    SnapshotInvoice,
    SnapshotSummary,
    StageBreakdown,
    StageSummary,
)

INCOME_TYPE = "ACCREC"
EXPENSE_TYPE = "ACCPAY"

STATUS_FILTER_PAID = "paid"
STATUS_FILTER_DEFAULT = "paid_authorized"

PAID_STATUSES: Tuple[str, ...] = ("PAID",)
DEFAULT_STATUSES: Tuple[str, ...] = ("PAID", "AUTHORISED")

UNNAMED_STAGE = "Unnamed stage"

# (department_id, stage_id) -> budgeted amount
BudgetMap = Dict[Tuple[str, str], Decimal]

ZERO = Decimal("0")


def normalize_status_filter(status_filter: Optional[str]) -> str:
    if status_filter == STATUS_FILTER_PAID:
        return STATUS_FILTER_PAID
    return STATUS_FILTER_DEFAULT


def statuses_for_filter(status_filter: Optional[str]) -> Tuple[str, ...]:
    """``paid`` selects PAID only; anything else selects PAID and AUTHORISED."""
    if normalize_status_filter(status_filter) == STATUS_FILTER_PAID:
        return PAID_STATUSES
    return DEFAULT_STATUSES


def is_income(invoice_type: Optional[str]) -> bool:
    return invoice_type == INCOME_TYPE


def is_expense(invoice_type: Optional[str]) -> bool:
    return invoice_type == EXPENSE_TYPE


def is_overheads(item: LineItemRecord, overheads_stage_name: str) -> bool:
    if item.stage_id is None or not item.stage_name:
        return False
    return item.stage_name.strip().lower() == overheads_stage_name.strip().lower()


def is_unassigned_bill(item: LineItemRecord) -> bool:
    return is_expense(item.invoice.type) and item.stage_id is None


def _later(current: Optional[date], candidate: Optional[date]) -> Optional[date]:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def _earlier(current: Optional[date], candidate: Optional[date]) -> Optional[date]:
    if candidate is None:
        return current
    if current is None or candidate < current:
        return candidate
    return current


def _newest_first(rollups: Iterable[InvoiceRollup]) -> List[InvoiceRollup]:
    # Undated invoices sort last
    return sorted(
        rollups,
        key=lambda r: (r.invoice_date is not None, r.invoice_date or date.min),
        reverse=True,
    )


def fold_department_totals(
    departments: Sequence[DepartmentRef],
    line_items: Iterable[LineItemRecord],
    statuses: Sequence[str],
) -> List[DepartmentTotals]:
    """
    Fold line items into per-department totals.

    Every department appears in the result (in the given order) even when
    it has no matching line items. Line items whose invoice status is not in
    ``statuses`` or whose department is unknown are ignored.
    """
    totals: "OrderedDict[str, DepartmentTotals]" = OrderedDict(
        (
            dept.id,
            DepartmentTotals(
                department_id=dept.id,
                department_name=dept.name,
                department_status=dept.status,
            ),
        )
        for dept in departments
    )
    invoices: Dict[str, Set[str]] = {dept_id: set() for dept_id in totals}
    income_invoices: Dict[str, Set[str]] = {dept_id: set() for dept_id in totals}
    expense_invoices: Dict[str, Set[str]] = {dept_id: set() for dept_id in totals}

    for item in line_items:
        if item.department_id not in totals:
            continue
        if item.invoice.status not in statuses:
            continue

        dept = totals[item.department_id]
        invoices[item.department_id].add(item.invoice.id)
        if is_income(item.invoice.type):
            dept.income_received += item.line_amount
            income_invoices[item.department_id].add(item.invoice.id)
        elif is_expense(item.invoice.type):
            dept.expenses_spent += item.line_amount
            expense_invoices[item.department_id].add(item.invoice.id)
        dept.latest_activity = _later(dept.latest_activity, item.invoice.invoice_date)

    for dept_id, dept in totals.items():
        dept.total_invoices = len(invoices[dept_id])
        dept.income_invoices = len(income_invoices[dept_id])
        dept.expense_invoices = len(expense_invoices[dept_id])

    return list(totals.values())


def build_stage_summaries(
    line_items: Iterable[LineItemRecord],
    budget_map: BudgetMap,
    overheads_stage_name: str,
) -> Dict[str, List[StageSummary]]:
    """
    Group payable line items by department and stage.

    Income lines, stage-less lines (unassigned bills) and the overheads stage
    are left out; they are reported separately.
    """
    by_department: Dict[str, "OrderedDict[str, StageSummary]"] = {}

    for item in line_items:
        if not is_expense(item.invoice.type):
            continue
        if item.department_id is None or item.stage_id is None:
            continue
        if is_overheads(item, overheads_stage_name):
            continue

        stages = by_department.setdefault(item.department_id, OrderedDict())
        stage = stages.get(item.stage_id)
        if stage is None:
            stage = StageSummary(
                stage_id=item.stage_id,
                stage_name=item.stage_name or UNNAMED_STAGE,
                budgeted_amount=budget_map.get(
                    (item.department_id, item.stage_id), ZERO
                ),
            )
            stages[item.stage_id] = stage

        stage.line_items_count += 1
        stage.stage_total_spent += item.line_amount
        stage.latest_stage_activity = _later(
            stage.latest_stage_activity, item.invoice.invoice_date
        )

    result: Dict[str, List[StageSummary]] = {}
    for dept_id, stages in by_department.items():
        for stage in stages.values():
            stage.avg_line_amount = (
                stage.stage_total_spent / stage.line_items_count
                if stage.line_items_count
                else ZERO
            )
        result[dept_id] = sorted(stages.values(), key=lambda s: s.stage_name.lower())
    return result


def sum_unassigned_and_overheads(
    line_items: Iterable[LineItemRecord], overheads_stage_name: str
) -> Dict[str, Tuple[Decimal, Decimal]]:
    """Per department: (unassigned bills, overheads), payable lines only."""
    sums: Dict[str, Tuple[Decimal, Decimal]] = {}
    for item in line_items:
        if item.department_id is None or not is_expense(item.invoice.type):
            continue
        unassigned, overheads = sums.get(item.department_id, (ZERO, ZERO))
        if item.stage_id is None:
            unassigned += item.line_amount
        elif is_overheads(item, overheads_stage_name):
            overheads += item.line_amount
        sums[item.department_id] = (unassigned, overheads)
    return sums


def build_department_overviews(
    totals: Sequence[DepartmentTotals],
    expense_items: Sequence[LineItemRecord],
    budget_map: BudgetMap,
    overheads_stage_name: str,
) -> List[DepartmentOverview]:
    stages = build_stage_summaries(expense_items, budget_map, overheads_stage_name)
    extras = sum_unassigned_and_overheads(expense_items, overheads_stage_name)

    overviews = []
    for dept in totals:
        unassigned, overheads = extras.get(dept.department_id, (ZERO, ZERO))
        overviews.append(
            DepartmentOverview(
                **dept.model_dump(exclude={"net_profit"}),
                stages=stages.get(dept.department_id, []),
                unassigned_bills=unassigned,
                overheads=overheads,
            )
        )
    return overviews


def build_overall_totals(departments: Sequence[DepartmentOverview]) -> OverallTotals:
    overall = OverallTotals(totalDepartments=len(departments))
    for dept in departments:
        overall.totalIncome += dept.income_received
        overall.totalExpenses += dept.expenses_spent
        overall.totalInvoices += dept.total_invoices
        overall.unassignedBills += dept.unassigned_bills
        overall.overheads += dept.overheads
    overall.netTotal = overall.totalIncome - overall.totalExpenses
    return overall


def summarize_department(
    line_items: Sequence[LineItemRecord], overheads_stage_name: str
) -> DepartmentDetailSummary:
    summary = DepartmentDetailSummary(total_line_items=len(line_items))
    invoices: Set[str] = set()
    income_invoices: Set[str] = set()
    expense_invoices: Set[str] = set()

    for item in line_items:
        invoices.add(item.invoice.id)
        if is_income(item.invoice.type):
            summary.total_income += item.line_amount
            income_invoices.add(item.invoice.id)
        elif is_expense(item.invoice.type):
            summary.total_expenses += item.line_amount
            expense_invoices.add(item.invoice.id)
            if item.stage_id is None:
                summary.unassigned_bills += item.line_amount
            elif is_overheads(item, overheads_stage_name):
                summary.overheads += item.line_amount

        summary.latest_invoice_date = _later(
            summary.latest_invoice_date, item.invoice.invoice_date
        )
        summary.earliest_invoice_date = _earlier(
            summary.earliest_invoice_date, item.invoice.invoice_date
        )

    summary.total_invoices = len(invoices)
    summary.income_invoices = len(income_invoices)
    summary.expense_invoices = len(expense_invoices)
    summary.expenses_excl_overheads = summary.total_expenses - summary.overheads
    summary.gross_profit = summary.total_income - summary.expenses_excl_overheads
    summary.net_profit = summary.total_income - summary.total_expenses
    return summary


def build_stage_breakdown(
    department_id: str,
    line_items: Iterable[LineItemRecord],
    budget_map: BudgetMap,
) -> List[StageBreakdown]:
    stages: "OrderedDict[str, StageBreakdown]" = OrderedDict()
    for item in line_items:
        if item.stage_id is None:
            continue
        stage = stages.get(item.stage_id)
        if stage is None:
            stage = StageBreakdown(
                stage_id=item.stage_id,
                stage_name=item.stage_name or UNNAMED_STAGE,
                budgeted_amount=budget_map.get((department_id, item.stage_id), ZERO),
            )
            stages[item.stage_id] = stage

        stage.items += 1
        if is_income(item.invoice.type):
            stage.income += item.line_amount
        elif is_expense(item.invoice.type):
            stage.expenses += item.line_amount
    return list(stages.values())


def group_by_invoice(line_items: Iterable[LineItemRecord]) -> List[InvoiceRollup]:
    """Roll line items up to one row per external invoice, newest first."""
    rollups: Dict[str, InvoiceRollup] = {}
    for item in line_items:
        key = item.invoice.xero_invoice_id
        rollup = rollups.get(key)
        if rollup is None:
            rollup = InvoiceRollup(
                xero_invoice_id=key,
                contact_name=item.invoice.contact_name,
                invoice_date=item.invoice.invoice_date,
                reference=item.invoice.reference,
                status=item.invoice.status,
            )
            rollups[key] = rollup
        rollup.total_amount += item.line_amount
        rollup.line_items_count += 1
    return _newest_first(rollups.values())


def group_stage_invoices(
    line_items: Iterable[LineItemRecord],
) -> Dict[str, List[InvoiceRollup]]:
    """Payable invoices per stage, each rolled up by external invoice id."""
    by_stage: Dict[str, List[LineItemRecord]] = {}
    for item in line_items:
        if item.stage_id is None or not is_expense(item.invoice.type):
            continue
        by_stage.setdefault(item.stage_id, []).append(item)
    return {stage_id: group_by_invoice(items) for stage_id, items in by_stage.items()}


def summarize_invoices(invoices: Sequence[SnapshotInvoice]) -> SnapshotSummary:
    """Period totals, computed from invoice totals rather than line items."""
    summary = SnapshotSummary(invoice_count=len(invoices))
    for invoice in invoices:
        summary.line_item_count += len(invoice.line_items)
        if is_income(invoice.type):
            summary.total_income += invoice.total
            summary.income_invoice_count += 1
        elif is_expense(invoice.type):
            summary.total_expenses += invoice.total
            summary.expense_invoice_count += 1
    summary.net_total = summary.total_income - summary.total_expenses
    return summary
