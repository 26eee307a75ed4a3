import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import String, DateTime, Date, Uuid, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from p2p.database import Base

GR_RECEIVED = "Received"
GR_NOT_RECEIVED = "Not Received"
GR_STATUSES = (GR_RECEIVED, GR_NOT_RECEIVED)


class GoodsReceivedRecord(Base):
    __tablename__ = "goods_received"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    serial_number: Mapped[Optional[str]] = mapped_column(String(100))
    asset_tag_number: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default=GR_NOT_RECEIVED)
    received_date: Mapped[Optional[date]] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('Received','Not Received')", name="chk_gr_status"
        ),
        CheckConstraint(
            "(status = 'Received') = (received_date IS NOT NULL)",
            name="chk_gr_received_date",
        ),
        Index("idx_gr_po_item", "po_number", "item_id"),
    )
