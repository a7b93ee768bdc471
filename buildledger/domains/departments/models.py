from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from prisma.models import Department
from pydantic import BaseModel

from buildledger.domains.expenses.models import (
    DepartmentDetailSummary,
    InvoiceRollup,
    LineItemRecord,
    Money,
    StageBreakdown,
)


class DepartmentInfo(BaseModel):
    id: str
    name: str
    status: Optional[str] = None

    @classmethod
    def from_prisma(cls, department: Department) -> "DepartmentInfo":
        return cls(id=department.id, name=department.name, status=department.status)


class LineItemResponse(BaseModel):
    """Response model for a department line item"""

    id: str
    description: str
    quantity: Money
    unit_amount: Money
    line_amount: Money
    tax_amount: Money
    stage_id: Optional[str] = None
    stage_name: Optional[str] = None
    invoice_id: str
    xero_invoice_id: str
    invoice_type: str
    invoice_date: Optional[date] = None
    contact_name: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: LineItemRecord) -> "LineItemResponse":
        return cls(
            id=record.id,
            description=record.description or "No description",
            quantity=record.quantity if record.quantity is not None else Decimal("1"),
            unit_amount=record.unit_amount or Decimal("0"),
            line_amount=record.line_amount,
            tax_amount=record.tax_amount or Decimal("0"),
            stage_id=record.stage_id,
            stage_name=record.stage_name,
            invoice_id=record.invoice.id,
            xero_invoice_id=record.invoice.xero_invoice_id,
            invoice_type=record.invoice.type or "ACCPAY",
            invoice_date=record.invoice.invoice_date,
            contact_name=record.invoice.contact_name or "Unknown Contact",
            created_at=record.created_at,
        )


class DepartmentDetailResponse(BaseModel):
    department: DepartmentInfo
    statusFilter: str
    lineItems: List[LineItemResponse]
    summary: DepartmentDetailSummary
    stageBreakdown: List[StageBreakdown]
    stageInvoices: Dict[str, List[InvoiceRollup]]


class IncomeSummary(BaseModel):
    total_income: Money = Decimal("0")
    invoice_count: int = 0
    department_name: str


class DepartmentIncomeResponse(BaseModel):
    invoices: List[InvoiceRollup]
    summary: IncomeSummary


class UnassignedBillsSummary(BaseModel):
    total_bills: int = 0
    total_amount: Money = Decimal("0")
    department_name: str


class UnassignedBillsResponse(BaseModel):
    bills: List[InvoiceRollup]
    summary: UnassignedBillsSummary
