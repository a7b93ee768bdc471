# buildledger/domains/external_accounting/xero/routes.py
import asyncio
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from prisma.models import Profile

from buildledger.core.database import get_db
from buildledger.core.settings import settings
from buildledger.shared.exceptions import CronUnauthorizedError
from buildledger.shared.permissions import Permission, require_permission
from prisma import Prisma

from .models import IncrementalSyncResponse
from .sync_service import IncrementalSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/xero", tags=["Xero"])


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Only the scheduler, holding CRON_SECRET, may trigger the sync."""
    expected = settings.CRON_SECRET
    if not expected or not authorization:
        raise CronUnauthorizedError()
    if not secrets.compare_digest(authorization, f"Bearer {expected}"):
        raise CronUnauthorizedError()


async def _run_sync(db: Prisma) -> Union[IncrementalSyncResponse, JSONResponse]:
    """Run one sync inside the execution budget and shape failures as JSON."""
    budget = settings.SYNC_TIME_BUDGET_SECONDS
    try:
        return await asyncio.wait_for(IncrementalSyncService(db).run(), timeout=budget)
    except asyncio.TimeoutError:
        error = f"Sync exceeded the {budget}s execution budget"
        logger.error(error)
    except HTTPException as e:
        error = str(e.detail)
        logger.error(f"Incremental sync failed: {error}")
    except Exception as e:
        error = str(e)
        logger.error(f"Incremental sync failed: {error}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": error,
            "centralized": True,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get(
    "/sync-incremental",
    response_model=IncrementalSyncResponse,
    response_model_exclude_none=True,
    operation_id="syncXeroIncremental",
)
async def sync_incremental(
    _: None = Depends(verify_cron_secret),
    db: Prisma = Depends(get_db),
) -> Union[IncrementalSyncResponse, JSONResponse]:
    """
    Scheduled incremental sync of Xero invoices.

    Requires `Authorization: Bearer <CRON_SECRET>`. Invoices updated in the
    lookback window are fetched with the most recently connected admin's
    Xero connection and upserted.
    """
    return await _run_sync(db)


@router.post(
    "/sync",
    response_model=IncrementalSyncResponse,
    response_model_exclude_none=True,
    operation_id="syncXeroNow",
)
async def sync_now(
    profile: Profile = Depends(require_permission(Permission.RUN_SYNC)),
    db: Prisma = Depends(get_db),
) -> Union[IncrementalSyncResponse, JSONResponse]:
    """
    Run the incremental sync on demand.

    Requires RUN_SYNC permission (admins only).
    """
    logger.info(f"Manual Xero sync requested by {profile.id}")
    return await _run_sync(db)
