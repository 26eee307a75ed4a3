from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p2p.models.approval_history import ApprovalHistory, ACTION_APPROVED

logger = structlog.get_logger()


async def list_history(db: AsyncSession, invoice_number: Optional[str] = None) -> list[ApprovalHistory]:
    q = select(ApprovalHistory)
    if invoice_number:
        q = q.where(ApprovalHistory.invoice_number == invoice_number)
    result = await db.execute(q.order_by(ApprovalHistory.timestamp, ApprovalHistory.id))
    return list(result.scalars().all())


async def has_approval(db: AsyncSession, invoice_number: str) -> bool:
    result = await db.execute(
        select(ApprovalHistory.id).where(
            ApprovalHistory.invoice_number == invoice_number,
            ApprovalHistory.action == ACTION_APPROVED,
        )
    )
    return result.first() is not None


async def append(
    db: AsyncSession,
    invoice_number: str,
    approver_name: str,
    action: str,
    comments: Optional[str] = None,
) -> ApprovalHistory:
    record = ApprovalHistory(
        invoice_number=invoice_number,
        approver_name=approver_name,
        action=action,
        comments=comments,
    )
    db.add(record)
    await db.flush()
    logger.info(
        "approval_history_appended",
        invoice_number=invoice_number,
        approver=approver_name,
        action=action,
    )
    return record


async def record_approval(
    db: AsyncSession,
    invoice_number: str,
    approver_name: str,
    comments: Optional[str] = None,
) -> bool:
    """
    Append the single Approved record for an invoice.

    Returns False when one already exists. The unique partial index settles
    races between two writers; the losing session is rolled back, so callers
    must not hold other pending writes on it.
    """
    if await has_approval(db, invoice_number):
        return False
    try:
        await append(db, invoice_number, approver_name, ACTION_APPROVED, comments)
    except IntegrityError:
        await db.rollback()
        logger.info("approval_history_duplicate", invoice_number=invoice_number)
        return False
    return True


class ApprovalHistoryStore:
    """Session-bound view of the history functions, handed to the orchestrator."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def has_approval(self, invoice_number: str) -> bool:
        return await has_approval(self.db, invoice_number)

    async def record_approval(
        self, invoice_number: str, approver_name: str, comments: Optional[str] = None
    ) -> bool:
        return await record_approval(self.db, invoice_number, approver_name, comments)
