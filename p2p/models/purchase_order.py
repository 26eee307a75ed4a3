import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    Numeric,
    DateTime,
    Date,
    Text,
    Uuid,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from p2p.database import Base

PO_OPEN = "Open"
PO_CLOSED = "Closed"
PO_STATUSES = (PO_OPEN, PO_CLOSED)


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    po_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    supplier_id: Mapped[Optional[str]] = mapped_column(String(50))
    order_date: Mapped[Optional[date]] = mapped_column(Date)
    expected_delivery_date: Mapped[Optional[date]] = mapped_column(Date)
    shipping_address: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default=PO_OPEN)
    auto_approve: Mapped[bool] = mapped_column(Boolean, default=False)
    requestor_name: Mapped[Optional[str]] = mapped_column(String(255))
    approval_date: Mapped[Optional[date]] = mapped_column(Date)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    shipping: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    draft_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("status IN ('Open','Closed')", name="chk_po_status"),
        CheckConstraint("draft_count >= 0", name="chk_po_draft_count"),
        Index("idx_po_status", "status"),
    )


class PoLineItem(Base):
    __tablename__ = "po_line_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    po_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("po_id", "line_number", name="uq_po_line_item"),
        CheckConstraint("quantity > 0", name="chk_po_line_qty"),
        CheckConstraint("unit_price >= 0", name="chk_po_line_price"),
        Index("idx_po_items_po", "po_id"),
    )
