from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field

from p2p.schemas.common import CamelModel, Money


class PoLineItemCreate(CamelModel):
    item_id: str = Field(..., min_length=1)
    description: str = ""
    quantity: int = Field(..., ge=1)
    unit_price: Money = Field(..., ge=0)


class PurchaseOrderCreate(CamelModel):
    po_number: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("poNumber", "purchaseOrderNumber", "po_number"),
    )
    supplier_name: str
    supplier_id: Optional[str] = None
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    shipping_address: Optional[str] = None
    status: Literal["Open", "Closed"] = "Open"
    auto_approve: bool = Field(
        False, validation_alias=AliasChoices("autoApprove", "autoCore", "auto_approve")
    )
    requestor_name: Optional[str] = None
    tax: Money = Field(Decimal("0"), ge=0)
    shipping: Money = Field(Decimal("0"), ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    line_items: List[PoLineItemCreate] = Field(..., min_length=1)


class PoLineItemResponse(CamelModel):
    line_number: int
    item_id: str
    description: str = ""
    quantity: int
    unit_price: Money
    total_price: Money


class PurchaseOrderResponse(CamelModel):
    po_number: str
    supplier_name: str
    supplier_id: Optional[str] = None
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    shipping_address: Optional[str] = None
    status: str
    auto_approve: bool = False
    requestor_name: Optional[str] = None
    approval_date: Optional[date] = None
    line_items: List[PoLineItemResponse] = []
    subtotal: Money
    tax: Money
    shipping: Money
    total: Money
    currency: str
    draft_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PoStatusUpdate(CamelModel):
    status: Literal["Open", "Closed"]
