from p2p.clients.base import ServiceClient
from p2p.schemas.purchase_order import PurchaseOrderResponse


class PurchaseOrderClient(ServiceClient):
    service_name = "purchase order service"

    async def get_purchase_order(self, po_number: str) -> PurchaseOrderResponse:
        data = await self._request("GET", f"/purchaseorders/{po_number}")
        return self._parse(PurchaseOrderResponse, data)

    async def increment_draft_count(self, po_number: str) -> PurchaseOrderResponse:
        data = await self._request("PUT", f"/purchaseorders/{po_number}/increment-draft")
        return self._parse(PurchaseOrderResponse, data)

    async def decrement_draft_count(self, po_number: str) -> PurchaseOrderResponse:
        data = await self._request("PUT", f"/purchaseorders/{po_number}/decrement-draft")
        return self._parse(PurchaseOrderResponse, data)
