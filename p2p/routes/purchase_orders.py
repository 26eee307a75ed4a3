from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.database import get_db
from p2p.models.purchase_order import PurchaseOrder, PoLineItem
from p2p.schemas.common import PaginatedResponse, build_pagination
from p2p.schemas.purchase_order import (
    PoLineItemResponse,
    PoStatusUpdate,
    PurchaseOrderCreate,
    PurchaseOrderResponse,
)
from p2p.services import purchase_order_service

router = APIRouter()


def _line_to_response(li: PoLineItem) -> PoLineItemResponse:
    return PoLineItemResponse(
        line_number=li.line_number,
        item_id=li.item_id,
        description=li.description,
        quantity=li.quantity,
        unit_price=li.unit_price,
        total_price=li.total_price,
    )


def _to_response(po: PurchaseOrder, line_items: list[PoLineItem]) -> PurchaseOrderResponse:
    return PurchaseOrderResponse(
        po_number=po.po_number,
        supplier_name=po.supplier_name,
        supplier_id=po.supplier_id,
        order_date=po.order_date,
        expected_delivery_date=po.expected_delivery_date,
        shipping_address=po.shipping_address,
        status=po.status,
        auto_approve=po.auto_approve,
        requestor_name=po.requestor_name,
        approval_date=po.approval_date,
        line_items=[_line_to_response(li) for li in line_items],
        subtotal=po.subtotal,
        tax=po.tax,
        shipping=po.shipping,
        total=po.total,
        currency=po.currency,
        draft_count=po.draft_count,
        created_at=po.created_at,
        updated_at=po.updated_at,
    )


async def _respond(db: AsyncSession, po: PurchaseOrder) -> PurchaseOrderResponse:
    return _to_response(po, await purchase_order_service.get_line_items(db, po.id))


@router.get("", response_model=PaginatedResponse[PurchaseOrderResponse])
async def list_purchase_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    po_status: str = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    pos, total = await purchase_order_service.list_purchase_orders(db, po_status, page, limit)
    items = [await _respond(db, po) for po in pos]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{po_number}", response_model=PurchaseOrderResponse)
async def get_purchase_order(po_number: str, db: AsyncSession = Depends(get_db)):
    po = await purchase_order_service.get_purchase_order(db, po_number)
    return await _respond(db, po)


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(body: PurchaseOrderCreate, db: AsyncSession = Depends(get_db)):
    po = await purchase_order_service.create_purchase_order(db, body)
    await db.commit()
    return await _respond(db, po)


@router.put("/{po_number}/status", response_model=PurchaseOrderResponse)
async def update_po_status(
    po_number: str, body: PoStatusUpdate, db: AsyncSession = Depends(get_db)
):
    po = await purchase_order_service.update_status(db, po_number, body.status)
    await db.commit()
    return await _respond(db, po)


@router.put("/{po_number}/increment-draft", response_model=PurchaseOrderResponse)
async def increment_draft(po_number: str, db: AsyncSession = Depends(get_db)):
    po = await purchase_order_service.increment_draft_count(db, po_number)
    await db.commit()
    return await _respond(db, po)


@router.put("/{po_number}/decrement-draft", response_model=PurchaseOrderResponse)
async def decrement_draft(po_number: str, db: AsyncSession = Depends(get_db)):
    po = await purchase_order_service.decrement_draft_count(db, po_number)
    await db.commit()
    return await _respond(db, po)
