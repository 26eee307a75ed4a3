from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.database import get_db
from p2p.models.goods_received import GoodsReceivedRecord
from p2p.schemas.goods_received import (
    GoodsReceivedCreate,
    GoodsReceivedResponse,
    GoodsReceivedUpdate,
)
from p2p.services import goods_received_service

router = APIRouter()


def _to_response(rec: GoodsReceivedRecord) -> GoodsReceivedResponse:
    return GoodsReceivedResponse(
        id=str(rec.id),
        po_number=rec.po_number,
        item_id=rec.item_id,
        serial_number=rec.serial_number,
        asset_tag_number=rec.asset_tag_number,
        status=rec.status,
        received_date=rec.received_date,
    )


@router.get("/po/{po_number}", response_model=list[GoodsReceivedResponse])
async def list_goods_received(
    po_number: str,
    item_id: str = Query(None, alias="itemId"),
    db: AsyncSession = Depends(get_db),
):
    records = await goods_received_service.list_for_po(db, po_number, item_id)
    return [_to_response(r) for r in records]


@router.post("", response_model=GoodsReceivedResponse, status_code=status.HTTP_201_CREATED)
async def create_goods_received(body: GoodsReceivedCreate, db: AsyncSession = Depends(get_db)):
    record = await goods_received_service.create_record(db, body)
    await db.commit()
    return _to_response(record)


@router.put("/update", response_model=GoodsReceivedResponse)
async def update_goods_received(body: GoodsReceivedUpdate, db: AsyncSession = Depends(get_db)):
    record = await goods_received_service.update_record(db, body)
    await db.commit()
    return _to_response(record)
