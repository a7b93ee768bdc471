# buildledger/domains/external_accounting/xero/sync_service.py
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from buildledger.core.settings import settings
from buildledger.domains.expenses.views import refresh_department_summary
from buildledger.shared.exceptions import SyncFailedError
from prisma import Prisma

from ..base.sync_orchestrator import SyncOrchestrator
from ..base.types import BaseInvoiceFilters
from .auth.service import XeroService
from .data_service import XeroDataService
from .models import IncrementalSyncResponse

logger = logging.getLogger(__name__)


class IncrementalSyncService:
    """
    Pulls recently changed Xero invoices into the database.

    A run resolves the active connection once, gets a valid token, fetches
    invoices updated within the lookback window and upserts them for the
    connection owner.
    """

    def __init__(
        self,
        db: Prisma,
        xero_service: Optional[XeroService] = None,
        data_service: Optional[XeroDataService] = None,
        orchestrator: Optional[SyncOrchestrator] = None,
    ):
        self.db = db
        self.xero_service = xero_service or XeroService(db)
        self.data_service = data_service or XeroDataService()
        self.orchestrator = orchestrator or SyncOrchestrator(db)

    async def run(self) -> IncrementalSyncResponse:
        """
        Run one incremental sync.

        Returns:
            IncrementalSyncResponse; ``success`` is False with a message
            when there is no active admin connection

        Raises:
            IntegrationTokenExpiredError: If the token could not be refreshed
            IntegrationConnectionError: If Xero returned an error
            SyncFailedError: If the upsert transaction failed
        """
        start_time = time.time()
        logger.info("Starting incremental Xero sync")

        connection = await self.xero_service.resolve_active_connection()
        if not connection:
            logger.warning("No active admin Xero connection; skipping sync")
            return IncrementalSyncResponse(
                success=False,
                message="No active Xero connection found for an admin user",
                timestamp=datetime.now(timezone.utc),
            )

        logger.info(
            f"Syncing with connection {connection.id} "
            f"(tenant {connection.tenant_name or connection.tenant_id}, "
            f"owner {connection.user_id})"
        )

        access_token = await self.xero_service.get_valid_access_token(connection)

        filters = BaseInvoiceFilters(
            modified_since=datetime.now(timezone.utc)
            - timedelta(hours=settings.XERO_SYNC_LOOKBACK_HOURS),
            max_pages=settings.XERO_SYNC_MAX_PAGES,
        )
        invoices = await self.data_service.get_invoices(
            access_token, connection.tenant_id, filters
        )

        result = await self.orchestrator.sync_invoices(connection.user_id, invoices)
        if not result.success:
            raise SyncFailedError(result.error or "unknown error")

        if result.count:
            try:
                await refresh_department_summary(self.db)
            except Exception as e:
                # Invoices are committed; the view catches up on the next refresh
                logger.warning(f"Department summary refresh failed: {e}")

        duration = time.time() - start_time
        logger.info(
            f"Incremental sync finished: {result.count} invoices, "
            f"{result.line_item_count} line items in {duration:.2f}s"
        )
        return IncrementalSyncResponse(
            success=True,
            duration_seconds=round(duration, 3),
            invoices_synced=result.count,
            line_items_synced=result.line_item_count,
            admin_user_id=connection.user_id,
            timestamp=datetime.now(timezone.utc),
        )
