import logging
import re
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from prisma.types import InvoiceCreateInput, InvoiceLineItemCreateInput

from buildledger.core.settings import settings
from prisma import Prisma

from .models import SyncResult

logger = logging.getLogger(__name__)

_XERO_DATE = re.compile(r"/Date\((-?\d+)([+-]\d{4})?\)/")


def _parse_xero_date(date_str: Optional[str]) -> Optional[datetime]:
    """
    Parse Xero API date format.

    Xero returns dates in format '/Date(1748476800000+0000)/' where the number
    is milliseconds since Unix epoch; some fields use ISO strings instead.

    Args:
        date_str: Date string from Xero API

    Returns:
        Timezone-aware UTC datetime, or None if missing or unparseable
    """
    if not date_str:
        return None

    if date_str.startswith("/Date("):
        match = _XERO_DATE.match(date_str)
        if match:
            timestamp_ms = int(match.group(1))
            try:
                return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        return None

    try:
        parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _to_decimal(value: Any, default: str = "0") -> Decimal:
    if value is None:
        return Decimal(default)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal(default)


def _to_optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else _to_decimal(value)


class SyncOrchestrator:
    """
    Persists fetched invoices and their line items.

    One call is one transaction: every invoice of the run is written or none
    is. Invoices are keyed on (owner, external invoice id) and overwritten
    field by field on every sync.
    """

    def __init__(self, db: Prisma):
        self.db = db

    async def sync_invoices(self, user_id: str, invoices: List[Any]) -> SyncResult:
        """
        Upsert invoices for the connection owner.

        Args:
            user_id: Profile that owns the synced invoices
            invoices: Provider invoices (already filtered)

        Returns:
            SyncResult with counts, or the error if the transaction failed
        """
        start_time = time.time()

        try:
            invoice_count, line_item_count = await self._upsert_invoices(
                user_id, invoices
            )
            duration = time.time() - start_time
            logger.info(
                f"Upserted {invoice_count} invoices and {line_item_count} line items "
                f"for user {user_id} in {duration:.2f}s"
            )
            return SyncResult(
                object_type="invoices",
                success=True,
                count=invoice_count,
                line_item_count=line_item_count,
                duration_seconds=duration,
                last_modified=datetime.now(timezone.utc),
            )

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Invoice upsert failed for user {user_id}: {e}", exc_info=True
            )
            return SyncResult(
                object_type="invoices",
                success=False,
                count=0,
                duration_seconds=duration,
                error=str(e),
            )

    async def _load_department_map(self) -> Tuple[Dict[str, str], Dict[str, str]]:
        """Departments keyed by Xero tracking option id and by lowercase name."""
        departments = await self.db.department.find_many()
        by_option_id = {
            d.xeroTrackingOptionId: d.id for d in departments if d.xeroTrackingOptionId
        }
        by_name = {d.name.strip().lower(): d.id for d in departments if d.name}
        return by_option_id, by_name

    async def _upsert_invoices(
        self, user_id: str, invoices: List[Any]
    ) -> Tuple[int, int]:
        """Upsert all invoices and line items inside a single transaction."""
        if not invoices:
            return 0, 0

        by_option_id, by_name = await self._load_department_map()
        invoice_count = 0
        line_item_count = 0

        async with self.db.tx(
            timeout=timedelta(seconds=settings.SYNC_TIME_BUDGET_SECONDS)
        ) as transaction:
            for invoice_data in invoices:
                data = self._map_invoice_data(user_id, invoice_data)
                update = {k: v for k, v in data.items() if k != "userId"}
                invoice = await transaction.invoice.upsert(
                    where={
                        "userId_xeroInvoiceId": {
                            "userId": user_id,
                            "xeroInvoiceId": invoice_data.InvoiceID,
                        }
                    },
                    data={"create": data, "update": update},  # type: ignore
                )
                invoice_count += 1
                line_item_count += await self._sync_line_items(
                    transaction, invoice.id, invoice_data, by_option_id, by_name
                )

        return invoice_count, line_item_count

    async def _sync_line_items(
        self,
        transaction: Prisma,
        invoice_id: str,
        invoice_data: Any,
        by_option_id: Dict[str, str],
        by_name: Dict[str, str],
    ) -> int:
        """
        Upsert the invoice's line items and remove ones Xero no longer lists.

        The stage is assigned in the dashboard, so an update never touches it.
        """
        kept: List[str] = []
        for line in invoice_data.LineItems or []:
            if not line.LineItemID:
                logger.warning(
                    f"Skipping line item without LineItemID on invoice "
                    f"{invoice_data.InvoiceID}"
                )
                continue

            data = self._map_line_item_data(invoice_id, line, by_option_id, by_name)
            update = {
                k: v
                for k, v in data.items()
                if k not in ("invoiceId", "xeroLineItemId")
            }
            await transaction.invoicelineitem.upsert(
                where={
                    "invoiceId_xeroLineItemId": {
                        "invoiceId": invoice_id,
                        "xeroLineItemId": line.LineItemID,
                    }
                },
                data={"create": data, "update": update},  # type: ignore[typeddict-item]
            )
            kept.append(line.LineItemID)

        await transaction.invoicelineitem.delete_many(
            where={"invoiceId": invoice_id, "xeroLineItemId": {"not_in": kept}}
        )
        return len(kept)

    def _map_invoice_data(self, user_id: str, invoice_data: Any) -> InvoiceCreateInput:
        """Map provider invoice data to the local invoice shape."""
        contact = invoice_data.Contact
        return {
            "userId": user_id,
            "xeroInvoiceId": invoice_data.InvoiceID,
            "xeroContactId": contact.ContactID if contact else None,
            "type": invoice_data.Type or "UNKNOWN",
            "status": invoice_data.Status or "UNKNOWN",
            "reference": invoice_data.Reference,
            "contactName": contact.Name if contact else None,
            "total": _to_decimal(invoice_data.Total),
            "subTotal": _to_decimal(invoice_data.SubTotal),
            "totalTax": _to_decimal(invoice_data.TotalTax),
            "currencyCode": invoice_data.CurrencyCode or "USD",
            "invoiceDate": _parse_xero_date(invoice_data.Date),
            "dueDate": _parse_xero_date(invoice_data.DueDate),
            "xeroUpdatedAt": _parse_xero_date(invoice_data.UpdatedDateUTC),
        }

    def _map_line_item_data(
        self,
        invoice_id: str,
        line: Any,
        by_option_id: Dict[str, str],
        by_name: Dict[str, str],
    ) -> InvoiceLineItemCreateInput:
        data: Dict[str, Any] = {
            "invoiceId": invoice_id,
            "xeroLineItemId": line.LineItemID,
            "description": line.Description,
            "quantity": _to_optional_decimal(line.Quantity),
            "unitAmount": _to_optional_decimal(line.UnitAmount),
            "lineAmount": _to_decimal(line.LineAmount),
            "taxAmount": _to_optional_decimal(line.TaxAmount),
            "accountCode": line.AccountCode,
        }
        department_id = self._resolve_department(line, by_option_id, by_name)
        if department_id:
            data["departmentId"] = department_id
        return data  # type: ignore[return-value]

    def _resolve_department(
        self, line: Any, by_option_id: Dict[str, str], by_name: Dict[str, str]
    ) -> Optional[str]:
        """Match a tracking option to a department by option id, then by name."""
        for tracking in line.Tracking or []:
            if tracking.TrackingOptionID and tracking.TrackingOptionID in by_option_id:
                return by_option_id[tracking.TrackingOptionID]
        for tracking in line.Tracking or []:
            if tracking.Option and tracking.Option.strip().lower() in by_name:
                return by_name[tracking.Option.strip().lower()]
        return None
