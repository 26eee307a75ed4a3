from p2p.clients.base import ServiceClient
from p2p.schemas.goods_received import GoodsReceivedResponse


class GoodsReceivedClient(ServiceClient):
    service_name = "goods received service"

    async def list_for_item(self, po_number: str, item_id: str) -> list[GoodsReceivedResponse]:
        data = await self._request(
            "GET", f"/goodsreceived/po/{po_number}", params={"itemId": item_id}
        )
        return self._parse_list(GoodsReceivedResponse, data)
