"""
Purchase order store.

The orchestrator only reads purchase orders. The draft generator is the only
caller of the draft counters.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p2p.config import settings
from p2p.exceptions import InvalidStateError, NotFoundError
from p2p.models.purchase_order import PurchaseOrder, PoLineItem, PO_CLOSED
from p2p.schemas.purchase_order import PurchaseOrderCreate
from p2p.services.pricing import compute_totals, line_total, money

logger = structlog.get_logger()


async def get_line_items(db: AsyncSession, po_id) -> list[PoLineItem]:
    result = await db.execute(
        select(PoLineItem)
        .where(PoLineItem.po_id == po_id)
        .order_by(PoLineItem.line_number)
    )
    return list(result.scalars().all())


async def get_purchase_order(db: AsyncSession, po_number: str) -> PurchaseOrder:
    result = await db.execute(
        select(PurchaseOrder).where(PurchaseOrder.po_number == po_number)
    )
    po = result.scalar_one_or_none()
    if not po:
        raise NotFoundError("Purchase order", po_number)
    return po


async def list_purchase_orders(
    db: AsyncSession,
    po_status: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[PurchaseOrder], int]:
    q = select(PurchaseOrder)
    count_q = select(func.count(PurchaseOrder.id))
    if po_status:
        q = q.where(PurchaseOrder.status == po_status)
        count_q = count_q.where(PurchaseOrder.status == po_status)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(PurchaseOrder.po_number).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def create_purchase_order(
    db: AsyncSession, body: PurchaseOrderCreate
) -> PurchaseOrder:
    existing = await db.execute(
        select(PurchaseOrder.id).where(PurchaseOrder.po_number == body.po_number)
    )
    if existing.scalar_one_or_none():
        raise InvalidStateError(f"Purchase order {body.po_number} already exists")

    subtotal, total = compute_totals(
        [(li.quantity, li.unit_price) for li in body.line_items],
        tax=body.tax,
        shipping=body.shipping,
    )
    po = PurchaseOrder(
        po_number=body.po_number,
        supplier_name=body.supplier_name,
        supplier_id=body.supplier_id,
        order_date=body.order_date or date.today(),
        expected_delivery_date=body.expected_delivery_date,
        shipping_address=body.shipping_address,
        status=body.status,
        auto_approve=body.auto_approve,
        requestor_name=body.requestor_name,
        subtotal=subtotal,
        tax=money(body.tax),
        shipping=money(body.shipping),
        total=total,
        currency=body.currency or settings.DEFAULT_CURRENCY,
        draft_count=0,
    )
    db.add(po)
    await db.flush()

    for idx, li in enumerate(body.line_items, start=1):
        db.add(PoLineItem(
            po_id=po.id,
            line_number=idx,
            item_id=li.item_id,
            description=li.description,
            quantity=li.quantity,
            unit_price=money(li.unit_price),
            total_price=line_total(li.quantity, li.unit_price),
        ))
    await db.flush()

    logger.info("purchase_order_created", po_number=po.po_number, total=str(total))
    return po


async def update_status(db: AsyncSession, po_number: str, new_status: str) -> PurchaseOrder:
    po = await get_purchase_order(db, po_number)
    old_status = po.status
    po.status = new_status
    if new_status == PO_CLOSED and po.approval_date is None:
        po.approval_date = date.today()
    await db.flush()
    logger.info(
        "purchase_order_status_changed",
        po_number=po_number,
        from_status=old_status,
        to_status=new_status,
    )
    return po


async def _adjust_draft_count(db: AsyncSession, po_number: str, delta: int) -> PurchaseOrder:
    stmt = update(PurchaseOrder).where(PurchaseOrder.po_number == po_number)
    if delta < 0:
        # floor at zero: the row is simply left alone
        stmt = stmt.where(PurchaseOrder.draft_count > 0)
    await db.execute(
        stmt.values(draft_count=PurchaseOrder.draft_count + delta)
        .execution_options(synchronize_session=False)
    )
    po = await get_purchase_order(db, po_number)
    await db.refresh(po)
    return po


async def increment_draft_count(db: AsyncSession, po_number: str) -> PurchaseOrder:
    po = await _adjust_draft_count(db, po_number, 1)
    logger.info("po_draft_count_incremented", po_number=po_number, draft_count=po.draft_count)
    return po


async def decrement_draft_count(db: AsyncSession, po_number: str) -> PurchaseOrder:
    po = await _adjust_draft_count(db, po_number, -1)
    logger.info("po_draft_count_decremented", po_number=po_number, draft_count=po.draft_count)
    return po
