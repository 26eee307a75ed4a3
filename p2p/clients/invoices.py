from typing import Optional

from p2p.clients.base import ServiceClient
from p2p.schemas.invoice import InvoiceResponse, InvoiceStatusUpdate


class InvoiceClient(ServiceClient):
    service_name = "invoice service"

    async def get_invoice(self, invoice_number: str) -> InvoiceResponse:
        data = await self._request("GET", f"/invoices/{invoice_number}")
        return self._parse(InvoiceResponse, data)

    async def update_status(
        self,
        invoice_number: str,
        status: str,
        expected_status: Optional[str] = None,
        expected_version: Optional[int] = None,
        updated_by: Optional[str] = None,
    ) -> InvoiceResponse:
        body = InvoiceStatusUpdate(
            status=status,
            expected_status=expected_status,
            expected_version=expected_version,
            updated_by=updated_by,
        )
        data = await self._request(
            "PUT",
            f"/invoices/{invoice_number}/status",
            json=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return self._parse(InvoiceResponse, data)
