from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p2p.exceptions import NotFoundError
from p2p.models.goods_received import GoodsReceivedRecord, GR_RECEIVED
from p2p.schemas.goods_received import GoodsReceivedCreate, GoodsReceivedUpdate

logger = structlog.get_logger()


async def list_for_po(
    db: AsyncSession, po_number: str, item_id: Optional[str] = None
) -> list[GoodsReceivedRecord]:
    """Records for a PO, optionally narrowed to one item. Empty when none exist."""
    q = select(GoodsReceivedRecord).where(GoodsReceivedRecord.po_number == po_number)
    if item_id:
        q = q.where(GoodsReceivedRecord.item_id == item_id)
    result = await db.execute(
        q.order_by(GoodsReceivedRecord.item_id, GoodsReceivedRecord.created_at)
    )
    return list(result.scalars().all())


async def create_record(db: AsyncSession, body: GoodsReceivedCreate) -> GoodsReceivedRecord:
    record = GoodsReceivedRecord(
        po_number=body.po_number,
        item_id=body.item_id,
        serial_number=body.serial_number,
        asset_tag_number=body.asset_tag_number,
        status=body.status,
        received_date=date.today() if body.status == GR_RECEIVED else None,
    )
    db.add(record)
    await db.flush()
    logger.info(
        "goods_received_created",
        po_number=body.po_number,
        item_id=body.item_id,
        status=body.status,
    )
    return record


async def update_record(db: AsyncSession, body: GoodsReceivedUpdate) -> GoodsReceivedRecord:
    """
    Update the first record for (po_number, item_id).

    ``received_date`` is stamped when the status becomes Received and cleared
    otherwise.
    """
    result = await db.execute(
        select(GoodsReceivedRecord)
        .where(
            GoodsReceivedRecord.po_number == body.po_number,
            GoodsReceivedRecord.item_id == body.item_id,
        )
        .order_by(GoodsReceivedRecord.created_at)
        .limit(1)
    )
    record = result.scalar_one_or_none()
    if not record:
        raise NotFoundError(
            "Goods received record",
            f"{body.po_number}/{body.item_id}",
            message=f"No goods received record for item {body.item_id} on PO {body.po_number}",
        )

    record.serial_number = body.serial_number
    record.asset_tag_number = body.asset_tag_number
    record.status = body.status
    if body.status == GR_RECEIVED:
        record.received_date = record.received_date or date.today()
    else:
        record.received_date = None
    await db.flush()

    logger.info(
        "goods_received_updated",
        po_number=body.po_number,
        item_id=body.item_id,
        status=body.status,
    )
    return record
