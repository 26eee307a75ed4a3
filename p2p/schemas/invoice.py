from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Literal, Optional

from pydantic import AliasChoices, ConfigDict, Field

from p2p.schemas.common import CamelModel, Money

InvoiceStatus = Literal["Draft", "Pending Approval", "Approved", "Paid"]


class InvoiceLineItemCreate(CamelModel):
    item_id: str = Field(..., min_length=1)
    description: str = ""
    quantity: int = Field(..., ge=1)
    unit_price: Money = Field(..., ge=0)


class InvoiceCreate(CamelModel):
    invoice_number: Optional[str] = None
    po_number: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("poNumber", "purchaseOrderNumber", "po_number"),
    )
    supplier_name: Optional[str] = None
    supplier_id: Optional[str] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    approver: Optional[str] = None
    auto_approve: bool = Field(
        False, validation_alias=AliasChoices("autoApprove", "autoCore", "auto_approve")
    )
    tax: Money = Field(Decimal("0"), ge=0)
    shipping: Money = Field(Decimal("0"), ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: Literal["Draft", "Pending Approval"] = "Pending Approval"
    line_items: List[InvoiceLineItemCreate] = Field(..., min_length=1)


class InvoiceLineItemResponse(CamelModel):
    line_number: int
    item_id: str
    description: str = ""
    quantity: int
    unit_price: Money
    total_price: Money


class InvoiceResponse(CamelModel):
    invoice_number: str
    po_number: str
    supplier_name: Optional[str] = None
    supplier_id: Optional[str] = None
    invoice_date: date
    due_date: Optional[date] = None
    approver: Optional[str] = None
    auto_approve: bool = False
    line_items: List[InvoiceLineItemResponse] = []
    subtotal: Money
    tax: Money
    shipping: Money
    total: Money
    currency: str
    status: str
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InvoiceStatusUpdate(CamelModel):
    status: InvoiceStatus
    expected_status: Optional[InvoiceStatus] = None
    expected_version: Optional[int] = Field(None, ge=1)
    updated_by: Optional[str] = None


OVERRIDABLE_FIELDS = ("invoice_date", "due_date", "currency", "shipping", "tax", "approver")


class InvoiceOverrides(CamelModel):
    """Fields a draft may rewrite before it is finalized. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    shipping: Optional[Money] = Field(None, ge=0)
    tax: Optional[Money] = Field(None, ge=0)
    approver: Optional[str] = Field(None, min_length=1)

    @classmethod
    def from_pairs(cls, pairs: List[str]) -> "InvoiceOverrides":
        """Parse the legacy ``["shipping:15.00", "dueDate:2026-01-31"]`` form."""
        values: dict = {}
        for pair in pairs:
            key, sep, raw = pair.partition(":")
            if not sep:
                raise ValueError(f"Override '{pair}' is not in 'field:value' form")
            key = key.strip()
            raw = raw.strip()
            field = _OVERRIDE_KEYS.get(key.replace("_", "").lower())
            if field is None:
                continue
            if field in ("shipping", "tax"):
                try:
                    values[field] = Decimal(raw)
                except InvalidOperation:
                    raise ValueError(f"Override '{key}' expects a number, got '{raw}'")
            else:
                values[field] = raw
        return cls.model_validate(values)

    def is_empty(self) -> bool:
        return not self.model_fields_set


_OVERRIDE_KEYS = {f.replace("_", ""): f for f in OVERRIDABLE_FIELDS}


class DraftCreate(CamelModel):
    po_number: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("poNumber", "purchaseOrderNumber", "po_number"),
    )
    overrides: InvoiceOverrides = Field(default_factory=InvoiceOverrides)


class DraftEdit(CamelModel):
    overrides: InvoiceOverrides
