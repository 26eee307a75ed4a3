"""
Safe limits: the per-approver ceiling on invoice totals.

Limits only ever go up. Lowering a limit is an administrative action outside
this service.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p2p.config import settings
from p2p.exceptions import InvalidStateError, NotFoundError, UnprocessableError
from p2p.models.safe_limit import SafeLimit
from p2p.schemas.safe_limit import SafeLimitCreate
from p2p.services.pricing import money, within_limit

logger = structlog.get_logger()


def check_approval_limit(limit: Optional[Decimal], amount: Decimal) -> bool:
    """True when ``amount`` does not exceed ``limit``. Unknown approver (None) is False."""
    return within_limit(limit, amount)


async def list_limits(db: AsyncSession) -> list[SafeLimit]:
    result = await db.execute(select(SafeLimit).order_by(SafeLimit.user_name))
    return list(result.scalars().all())


async def get_by_user_id(db: AsyncSession, user_id: str) -> SafeLimit:
    result = await db.execute(select(SafeLimit).where(SafeLimit.user_id == user_id))
    limit = result.scalar_one_or_none()
    if not limit:
        raise NotFoundError("Safe limit for user", user_id)
    return limit


async def find_by_user_name(db: AsyncSession, user_name: str) -> Optional[SafeLimit]:
    result = await db.execute(
        select(SafeLimit).where(func.lower(SafeLimit.user_name) == user_name.strip().lower())
    )
    return result.scalars().first()


async def get_by_user_name(db: AsyncSession, user_name: str) -> SafeLimit:
    limit = await find_by_user_name(db, user_name)
    if not limit:
        raise NotFoundError("Safe limit for user", user_name)
    return limit


async def create_limit(db: AsyncSession, body: SafeLimitCreate) -> SafeLimit:
    existing = await db.execute(select(SafeLimit.id).where(SafeLimit.user_id == body.user_id))
    if existing.scalar_one_or_none():
        raise InvalidStateError(f"Safe limit for user {body.user_id} already exists")

    limit = SafeLimit(
        user_id=body.user_id,
        user_name=body.user_name,
        approval_limit=money(body.approval_limit),
        currency=body.currency or settings.DEFAULT_CURRENCY,
        role=body.role,
    )
    db.add(limit)
    await db.flush()
    logger.info("safe_limit_created", user_id=body.user_id, approval_limit=str(limit.approval_limit))
    return limit


async def check(db: AsyncSession, user_name: str, amount: Decimal) -> tuple[bool, Optional[Decimal]]:
    """Return (can_approve, approval_limit) for a named approver."""
    limit = await find_by_user_name(db, user_name)
    approval_limit = limit.approval_limit if limit else None
    allowed = check_approval_limit(approval_limit, amount)
    logger.info(
        "safe_limit_checked",
        user_name=user_name,
        amount=str(amount),
        approval_limit=str(approval_limit) if approval_limit is not None else None,
        can_approve=allowed,
    )
    return allowed, approval_limit


async def increase_limit(
    db: AsyncSession, user_id: str, new_limit: Decimal, justification: str
) -> SafeLimit:
    if not justification or not justification.strip():
        raise UnprocessableError("A justification is required to increase a limit")

    limit = await get_by_user_id(db, user_id)
    new_limit = money(new_limit)
    if new_limit <= limit.approval_limit:
        raise UnprocessableError(
            f"New limit {new_limit} must be greater than the current limit {limit.approval_limit}"
        )

    old_limit = limit.approval_limit
    limit.approval_limit = new_limit
    await db.flush()
    logger.info(
        "safe_limit_increased",
        user_id=user_id,
        old_limit=str(old_limit),
        new_limit=str(new_limit),
        justification=justification,
    )
    return limit
