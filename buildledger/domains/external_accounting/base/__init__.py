from .data_service import BaseIntegrationDataService
from .models import SyncResult
from .sync_orchestrator import SyncOrchestrator

__all__ = [
    "SyncResult",
    "BaseIntegrationDataService",
    "SyncOrchestrator",
]
