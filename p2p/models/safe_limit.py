import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Numeric, DateTime, Uuid, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from p2p.database import Base


class SafeLimit(Base):
    __tablename__ = "safe_limits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    approval_limit: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    role: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("approval_limit >= 0", name="chk_safe_limit_positive"),
        Index("idx_safe_limits_user_name", "user_name"),
    )
