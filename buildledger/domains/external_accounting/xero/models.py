from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class IncrementalSyncResponse(BaseModel):
    """Outcome of one incremental sync run."""

    success: bool
    duration_seconds: float = 0.0
    invoices_synced: int = 0
    line_items_synced: int = 0
    admin_user_id: Optional[str] = None
    centralized: bool = True
    timestamp: datetime
    message: Optional[str] = Field(
        None, description="Set when the run was skipped, e.g. no connection"
    )
