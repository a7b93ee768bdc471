import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, cast

import httpx

from buildledger.shared.exceptions import (
    IntegrationAuthenticationError,
    IntegrationConnectionError,
)

from ..base.data_service import BaseIntegrationDataService
from ..base.types import BaseInvoiceFilters
from .types import HttpHeaders, HttpParams, XeroInvoice, XeroInvoicesResponse

logger = logging.getLogger(__name__)

# Xero returns at most this many invoices per page
XERO_PAGE_SIZE = 100


def xero_datetime_filter(cutoff: datetime) -> str:
    """Render a cutoff as a Xero ``where`` clause on UpdatedDateUTC."""
    return f"UpdatedDateUTC>=DateTime({cutoff.year},{cutoff.month},{cutoff.day})"


class XeroDataService(BaseIntegrationDataService[XeroInvoice]):
    """Xero-specific API implementation."""

    def __init__(self, base_url: str = "https://api.xero.com/api.xro/2.0"):
        self.base_url = base_url

    async def get_invoices(
        self, access_token: str, tenant_id: str, filters: BaseInvoiceFilters
    ) -> List[XeroInvoice]:
        """
        Get invoices updated since the cutoff, newest first.

        Pages are always requested explicitly because Xero only includes
        line items on paged responses.

        Args:
            access_token: Valid Xero access token
            tenant_id: Xero tenant the token is authorised for
            filters: Cutoff, page bound and excluded statuses

        Returns:
            Invoices with an InvoiceID and a status not excluded
        """
        all_invoices: List[XeroInvoice] = []
        page = 1

        while True:
            params = HttpParams(
                page=page,
                where=xero_datetime_filter(filters.modified_since),
                order="UpdatedDateUTC DESC",
            )
            response = await self._make_xero_request(
                "GET",
                f"{self.base_url}/Invoices",
                access_token,
                tenant_id,
                params=params,
            )
            invoices = XeroInvoicesResponse.model_validate(response).Invoices
            all_invoices.extend(invoices)

            if len(invoices) < XERO_PAGE_SIZE or page >= filters.max_pages:
                break
            page += 1

        excluded = set(filters.exclude_statuses)
        kept = [
            invoice
            for invoice in all_invoices
            if invoice.InvoiceID and invoice.Status not in excluded
        ]
        logger.info(
            f"Fetched {len(all_invoices)} Xero invoices over {page} page(s), "
            f"{len(kept)} kept after filtering"
        )
        return kept

    async def _make_xero_request(
        self,
        method: str,
        url: str,
        access_token: str,
        tenant_id: str,
        params: Optional[HttpParams] = None,
        headers: Optional[HttpHeaders] = None,
    ) -> Dict[str, Any]:
        """
        Make one authenticated request to the Xero API.

        Nothing is retried: any failure fails the calling sync run.

        Raises:
            IntegrationAuthenticationError: When Xero rejects the token
            IntegrationConnectionError: For any other non-success response
                or a transport failure
        """
        request_headers: HttpHeaders = {
            "Authorization": f"Bearer {access_token}",
            "Xero-Tenant-Id": tenant_id,
            "Accept": "application/json",
        }
        if headers:
            request_headers.update(headers)

        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    method,
                    url,
                    headers=request_headers,
                    params=params.model_dump(exclude_none=True) if params else None,
                    timeout=30.0,
                )
        except httpx.RequestError as e:
            raise IntegrationConnectionError(f"Xero API request error: {str(e)}")

        if response.status_code == 401:
            raise IntegrationAuthenticationError(
                f"Xero authentication failed: {response.text}"
            )
        if not response.is_success:
            raise IntegrationConnectionError(
                f"Xero API request failed ({response.status_code}): {response.text}"
            )

        return cast(Dict[str, Any], response.json())
