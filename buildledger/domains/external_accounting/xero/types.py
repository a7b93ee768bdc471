"""Xero API type definitions for type safety.

Invoice payloads are validated leniently: the incremental sync must not fail
because Xero omitted an optional field, and records missing an InvoiceID are
filtered out after validation instead of rejected by it.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class XeroTrackingCategory(BaseModel):
    """Tracking category option applied to a line item."""

    model_config = ConfigDict(extra="allow")

    TrackingCategoryID: Optional[str] = Field(None, description="Category identifier")
    TrackingOptionID: Optional[str] = Field(None, description="Option identifier")
    Name: Optional[str] = Field(None, description="Category name")
    Option: Optional[str] = Field(None, description="Option name")


class XeroContact(BaseModel):
    """Xero contact structure."""

    model_config = ConfigDict(extra="allow")

    ContactID: Optional[str] = Field(None, description="Xero contact identifier")
    Name: Optional[str] = Field(None, description="Contact name")


class XeroLineItem(BaseModel):
    """Xero invoice line item structure."""

    model_config = ConfigDict(extra="allow")

    LineItemID: Optional[str] = Field(None, description="Line item identifier")
    Description: Optional[str] = Field(None, description="Line item description")
    Quantity: Optional[float] = Field(None, description="Quantity of items")
    UnitAmount: Optional[float] = Field(None, description="Price per unit")
    LineAmount: Optional[float] = Field(None, description="Total line amount")
    TaxAmount: Optional[float] = Field(None, description="Tax amount for line")
    AccountCode: Optional[str] = Field(None, description="Account code for line")
    Tracking: List[XeroTrackingCategory] = Field(
        default_factory=list, description="Tracking options (department)"
    )


class XeroInvoice(BaseModel):
    """Xero invoice structure."""

    model_config = ConfigDict(extra="allow")

    InvoiceID: Optional[str] = Field(None, description="Xero invoice identifier")
    InvoiceNumber: Optional[str] = Field(None, description="Invoice number")
    Type: Optional[str] = Field(None, description="ACCREC (receivable) or ACCPAY")
    Status: Optional[str] = Field(None, description="Invoice status")
    Contact: Optional[XeroContact] = Field(None, description="Invoice contact")
    Reference: Optional[str] = Field(None, description="Invoice reference")
    Date: Optional[str] = Field(None, description="Invoice date in Xero format")
    DueDate: Optional[str] = Field(None, description="Invoice due date")
    SubTotal: Optional[float] = Field(None, description="Invoice subtotal before tax")
    TotalTax: Optional[float] = Field(None, description="Total tax amount")
    Total: Optional[float] = Field(None, description="Total including tax")
    CurrencyCode: Optional[str] = Field(None, description="Currency code")
    UpdatedDateUTC: Optional[str] = Field(None, description="Last updated date")
    LineItems: List[XeroLineItem] = Field(
        default_factory=list, description="Invoice line items"
    )


class XeroInvoicesResponse(BaseModel):
    """Envelope of GET /Invoices."""

    model_config = ConfigDict(extra="allow")

    Invoices: List[XeroInvoice] = Field(default_factory=list)


# HTTP request types

HttpHeaders = Dict[str, str]


class HttpParams(BaseModel):
    """Query parameters for the Invoices endpoint."""

    page: Optional[int] = None
    where: Optional[str] = None
    order: Optional[str] = None
