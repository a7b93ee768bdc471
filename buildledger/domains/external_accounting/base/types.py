"""Generic type definitions for external accounting integrations."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class BaseInvoiceFilters(BaseModel):
    """Invoice selection for an incremental sync."""

    modified_since: datetime = Field(
        ..., description="Only invoices updated at or after this time"
    )
    max_pages: int = Field(1, ge=1, description="Upper bound on pages requested")
    exclude_statuses: List[str] = Field(
        default_factory=lambda: ["DELETED"],
        description="Statuses dropped before persisting",
    )
