from abc import ABC, abstractmethod
from typing import Generic, List, TypeVar

from .types import BaseInvoiceFilters

# Provider-specific invoice type
InvoiceType = TypeVar("InvoiceType")


class BaseIntegrationDataService(ABC, Generic[InvoiceType]):
    """Reads accounting data from an integration provider."""

    @abstractmethod
    async def get_invoices(
        self, access_token: str, tenant_id: str, filters: BaseInvoiceFilters
    ) -> List[InvoiceType]:
        """
        Get invoices changed since ``filters.modified_since``.

        Args:
            access_token: Valid bearer token for the provider
            tenant_id: Provider tenant (organisation) identifier
            filters: Cutoff, page bound and excluded statuses

        Returns:
            Typed invoices, each with an external identifier

        Raises:
            IntegrationConnectionError: On any non-success response
        """
        pass
