from decimal import Decimal

from p2p.clients.base import ServiceClient
from p2p.schemas.safe_limit import ApprovalCheckRequest, ApprovalCheckResponse


class SafeLimitClient(ServiceClient):
    service_name = "safe limit service"

    async def check(self, user_name: str, invoice_amount: Decimal) -> ApprovalCheckResponse:
        body = ApprovalCheckRequest(user_name=user_name, invoice_amount=invoice_amount)
        data = await self._request(
            "POST", "/safelimits/check", json=body.model_dump(mode="json", by_alias=True)
        )
        return self._parse(ApprovalCheckResponse, data)
