from datetime import date
from typing import Literal, Optional

from pydantic import AliasChoices, Field

from p2p.schemas.common import CamelModel

GoodsReceivedStatus = Literal["Received", "Not Received"]


class GoodsReceivedCreate(CamelModel):
    po_number: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("poNumber", "purchaseOrderNumber", "po_number"),
    )
    item_id: str = Field(..., min_length=1)
    serial_number: Optional[str] = None
    asset_tag_number: Optional[str] = None
    status: GoodsReceivedStatus = "Not Received"


class GoodsReceivedUpdate(CamelModel):
    po_number: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("poNumber", "purchaseOrderNumber", "po_number"),
    )
    item_id: str = Field(..., min_length=1)
    serial_number: str = Field(..., min_length=1)
    asset_tag_number: str = Field(..., min_length=1)
    status: GoodsReceivedStatus


class GoodsReceivedResponse(CamelModel):
    id: str
    po_number: str
    item_id: str
    serial_number: Optional[str] = None
    asset_tag_number: Optional[str] = None
    status: str
    received_date: Optional[date] = None
