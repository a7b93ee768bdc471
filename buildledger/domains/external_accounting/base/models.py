from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SyncResult(BaseModel):
    """Result of a sync operation."""

    object_type: str
    success: bool
    count: int
    line_item_count: int = 0
    duration_seconds: float
    last_modified: Optional[datetime] = None
    error: Optional[str] = None
