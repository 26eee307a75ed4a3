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
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from p2p.database import Base

STATUS_DRAFT = "Draft"
STATUS_PENDING_APPROVAL = "Pending Approval"
STATUS_APPROVED = "Approved"
STATUS_PAID = "Paid"
INVOICE_STATUSES = (STATUS_DRAFT, STATUS_PENDING_APPROVAL, STATUS_APPROVED, STATUS_PAID)

# Draft -> Pending Approval -> Approved -> Paid, nothing else
ALLOWED_TRANSITIONS = {
    STATUS_DRAFT: {STATUS_PENDING_APPROVAL},
    STATUS_PENDING_APPROVAL: {STATUS_APPROVED},
    STATUS_APPROVED: {STATUS_PAID},
    STATUS_PAID: set(),
}


class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_name: Mapped[Optional[str]] = mapped_column(String(255))
    supplier_id: Mapped[Optional[str]] = mapped_column(String(50))
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    approver: Mapped[Optional[str]] = mapped_column(String(255))
    requested_approver: Mapped[Optional[str]] = mapped_column(String(255))
    auto_approve: Mapped[bool] = mapped_column(Boolean, default=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    shipping: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    status: Mapped[str] = mapped_column(String(30), default=STATUS_PENDING_APPROVAL)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoice_number"),
        CheckConstraint(
            "status IN ('Draft','Pending Approval','Approved','Paid')",
            name="chk_invoice_status",
        ),
        Index("idx_invoices_po", "po_number"),
        Index("idx_invoices_status", "status"),
        # at most one non-Draft invoice per purchase order
        Index(
            "uq_invoices_active_po",
            "po_number",
            unique=True,
            postgresql_where=text("status <> 'Draft'"),
            sqlite_where=text("status <> 'Draft'"),
        ),
    )


class InvoiceLineItem(Base):
    __tablename__ = "invoice_line_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_invoice_line_item"),
        CheckConstraint("quantity > 0", name="chk_inv_line_qty"),
        CheckConstraint("unit_price >= 0", name="chk_inv_line_price"),
        Index("idx_invoice_items_invoice", "invoice_id"),
    )
