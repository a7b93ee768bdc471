"""Typed records and response models for financial aggregation.

Rows read through Prisma (or from the summary view) are converted into these
records once, at the boundary, so the folding code in ``aggregation`` never
touches ORM objects or raw dicts.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from prisma.models import Invoice, InvoiceLineItem
from pydantic import (
    BaseModel,
    Field,
    PlainSerializer,
    computed_field,
    field_validator,
)


def _as_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# Money stays Decimal in Python and is emitted as a JSON number.
Money = Annotated[
    Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")
]


class InvoiceRef(BaseModel):
    """The invoice columns the aggregator needs, joined onto a line item."""

    id: str
    xero_invoice_id: str
    type: str
    status: str
    invoice_date: Optional[date] = None
    contact_name: Optional[str] = None
    reference: Optional[str] = None
    total: Money = Decimal("0")

    @field_validator("invoice_date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[date]:
        return _as_date(v)

    @field_validator("total", mode="before")
    @classmethod
    def coerce_total(cls, v: Any) -> Decimal:
        return _as_decimal(v)

    @classmethod
    def from_prisma(cls, invoice: Invoice) -> "InvoiceRef":
        return cls(
            id=invoice.id,
            xero_invoice_id=invoice.xeroInvoiceId,
            type=invoice.type,
            status=invoice.status,
            invoice_date=invoice.invoiceDate,
            contact_name=invoice.contactName,
            reference=invoice.reference,
            total=invoice.total,
        )


class LineItemRecord(BaseModel):
    """A line item joined with its invoice and (optional) stage."""

    id: str
    department_id: Optional[str] = None
    department_name: Optional[str] = None
    stage_id: Optional[str] = None
    stage_name: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[Money] = None
    unit_amount: Optional[Money] = None
    line_amount: Money = Decimal("0")
    tax_amount: Optional[Money] = None
    created_at: Optional[datetime] = None
    invoice: InvoiceRef

    @field_validator("line_amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return _as_decimal(v)

    @classmethod
    def from_prisma(
        cls, item: InvoiceLineItem, invoice: Optional[Invoice] = None
    ) -> "LineItemRecord":
        """
        Build a record from a line item loaded with ``include={"invoice": True}``.

        ``invoice`` may be passed explicitly when the item was loaded through
        its parent invoice. A line item without an invoice is rejected.
        """
        parent = invoice or item.invoice
        if parent is None:
            raise ValueError(f"Line item {item.id} was loaded without its invoice")

        stage = getattr(item, "stage", None)
        department = getattr(item, "department", None)
        return cls(
            id=item.id,
            department_id=item.departmentId,
            department_name=department.name if department else None,
            stage_id=item.stageId,
            stage_name=stage.name if stage else None,
            description=item.description,
            quantity=item.quantity,
            unit_amount=item.unitAmount,
            line_amount=item.lineAmount,
            tax_amount=item.taxAmount,
            created_at=item.createdAt,
            invoice=InvoiceRef.from_prisma(parent),
        )


class DepartmentRef(BaseModel):
    id: str
    name: str
    status: Optional[str] = None


class DepartmentTotals(BaseModel):
    """Per-department income and expense totals for one status filter."""

    department_id: str
    department_name: str
    department_status: Optional[str] = None
    total_invoices: int = 0
    income_received: Money = Decimal("0")
    expenses_spent: Money = Decimal("0")
    latest_activity: Optional[date] = None
    income_invoices: int = 0
    expense_invoices: int = 0

    @field_validator("income_received", "expenses_spent", mode="before")
    @classmethod
    def coerce_money(cls, v: Any) -> Decimal:
        return _as_decimal(v)

    @field_validator("latest_activity", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Optional[date]:
        return _as_date(v)

    @field_validator(
        "total_invoices", "income_invoices", "expense_invoices", mode="before"
    )
    @classmethod
    def coerce_count(cls, v: Any) -> int:
        return int(v) if v is not None else 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def net_profit(self) -> Money:
        return self.income_received - self.expenses_spent

    @classmethod
    def from_view_row(cls, row: Dict[str, Any]) -> "DepartmentTotals":
        """Build totals from a ``department_expense_summary`` row."""
        return cls(
            department_id=str(row["department_id"]),
            department_name=row["department_name"],
            department_status=row.get("department_status"),
            total_invoices=row.get("total_invoices"),
            income_received=row.get("income_received"),
            expenses_spent=row.get("expenses_spent"),
            latest_activity=row.get("latest_activity"),
            income_invoices=row.get("income_invoices"),
            expense_invoices=row.get("expense_invoices"),
        )


class StageSummary(BaseModel):
    """Spend against one stage of one department."""

    stage_id: str
    stage_name: str
    line_items_count: int = 0
    stage_total_spent: Money = Decimal("0")
    budgeted_amount: Money = Decimal("0")
    avg_line_amount: Money = Decimal("0")
    latest_stage_activity: Optional[date] = None


class DepartmentOverview(DepartmentTotals):
    stages: List[StageSummary] = Field(default_factory=list)
    unassigned_bills: Money = Decimal("0")
    overheads: Money = Decimal("0")


class OverallTotals(BaseModel):
    totalIncome: Money = Decimal("0")
    totalExpenses: Money = Decimal("0")
    netTotal: Money = Decimal("0")
    totalDepartments: int = 0
    totalInvoices: int = 0
    unassignedBills: Money = Decimal("0")
    overheads: Money = Decimal("0")


class ExpensesOverviewResponse(BaseModel):
    departments: List[DepartmentOverview]
    overallStats: OverallTotals
    statusFilter: str


class StageBreakdown(BaseModel):
    stage_id: str
    stage_name: str
    expenses: Money = Decimal("0")
    income: Money = Decimal("0")
    items: int = 0
    budgeted_amount: Money = Decimal("0")


class InvoiceRollup(BaseModel):
    """Line items of one invoice summed together."""

    xero_invoice_id: str
    contact_name: Optional[str] = None
    invoice_date: Optional[date] = None
    reference: Optional[str] = None
    status: Optional[str] = None
    total_amount: Money = Decimal("0")
    line_items_count: int = 0


class DepartmentDetailSummary(BaseModel):
    total_invoices: int = 0
    income_invoices: int = 0
    expense_invoices: int = 0
    total_income: Money = Decimal("0")
    total_expenses: Money = Decimal("0")
    expenses_excl_overheads: Money = Decimal("0")
    overheads: Money = Decimal("0")
    unassigned_bills: Money = Decimal("0")
    gross_profit: Money = Decimal("0")
    net_profit: Money = Decimal("0")
    total_line_items: int = 0
    latest_invoice_date: Optional[date] = None
    earliest_invoice_date: Optional[date] = None


# Period snapshots


class SnapshotLineItem(BaseModel):
    id: str
    description: Optional[str] = None
    line_amount: Money = Decimal("0")
    department_id: Optional[str] = None
    department_name: Optional[str] = None
    stage_id: Optional[str] = None
    stage_name: Optional[str] = None


class SnapshotInvoice(BaseModel):
    id: str
    xero_invoice_id: str
    type: str
    status: str
    contact_name: Optional[str] = None
    reference: Optional[str] = None
    invoice_date: Optional[date] = None
    total: Money = Decimal("0")
    line_items: List[SnapshotLineItem] = Field(default_factory=list)

    @classmethod
    def from_prisma(cls, invoice: Invoice) -> "SnapshotInvoice":
        items = invoice.lineItems or []
        return cls(
            id=invoice.id,
            xero_invoice_id=invoice.xeroInvoiceId,
            type=invoice.type,
            status=invoice.status,
            contact_name=invoice.contactName,
            reference=invoice.reference,
            invoice_date=_as_date(invoice.invoiceDate),
            total=_as_decimal(invoice.total),
            line_items=[
                SnapshotLineItem(
                    id=item.id,
                    description=item.description,
                    line_amount=_as_decimal(item.lineAmount),
                    department_id=item.departmentId,
                    department_name=item.department.name if item.department else None,
                    stage_id=item.stageId,
                    stage_name=item.stage.name if item.stage else None,
                )
                for item in items
            ],
        )


class SnapshotSummary(BaseModel):
    total_income: Money = Decimal("0")
    total_expenses: Money = Decimal("0")
    net_total: Money = Decimal("0")
    invoice_count: int = 0
    line_item_count: int = 0
    income_invoice_count: int = 0
    expense_invoice_count: int = 0


class PeriodSnapshotResponse(BaseModel):
    period: str
    period_start: date
    period_end: date
    statusFilter: str
    invoices: List[SnapshotInvoice]
    summary: SnapshotSummary
