import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Text, Uuid, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from p2p.database import Base

ACTION_APPROVED = "Approved"


class ApprovalHistory(Base):
    """Append-only. Rows are inserted, never updated or deleted."""

    __tablename__ = "approval_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    approver_name: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_approval_history_invoice", "invoice_number"),
        # at most one Approved record per invoice
        Index(
            "uq_approval_history_approved",
            "invoice_number",
            unique=True,
            postgresql_where=text("action = 'Approved'"),
            sqlite_where=text("action = 'Approved'"),
        ),
    )
