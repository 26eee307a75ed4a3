from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.database import get_db
from p2p.models.invoice import Invoice, InvoiceLineItem
from p2p.schemas.common import PaginatedResponse, build_pagination
from p2p.schemas.invoice import (
    InvoiceCreate,
    InvoiceLineItemResponse,
    InvoiceResponse,
    InvoiceStatusUpdate,
)
from p2p.services import invoice_service

router = APIRouter()


def _line_to_response(li: InvoiceLineItem) -> InvoiceLineItemResponse:
    return InvoiceLineItemResponse(
        line_number=li.line_number,
        item_id=li.item_id,
        description=li.description,
        quantity=li.quantity,
        unit_price=li.unit_price,
        total_price=li.total_price,
    )


def _to_response(inv: Invoice, line_items: list[InvoiceLineItem]) -> InvoiceResponse:
    return InvoiceResponse(
        invoice_number=inv.invoice_number,
        po_number=inv.po_number,
        supplier_name=inv.supplier_name,
        supplier_id=inv.supplier_id,
        invoice_date=inv.invoice_date,
        due_date=inv.due_date,
        approver=inv.approver,
        auto_approve=inv.auto_approve,
        line_items=[_line_to_response(li) for li in line_items],
        subtotal=inv.subtotal,
        tax=inv.tax,
        shipping=inv.shipping,
        total=inv.total,
        currency=inv.currency,
        status=inv.status,
        version=inv.version,
        created_at=inv.created_at,
        updated_at=inv.updated_at,
    )


async def invoice_response(db: AsyncSession, inv: Invoice) -> InvoiceResponse:
    return _to_response(inv, await invoice_service.get_line_items(db, inv.id))


@router.get("", response_model=PaginatedResponse[InvoiceResponse])
async def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    inv_status: str = Query(None, alias="status"),
    po_number: str = Query(None, alias="poNumber"),
    db: AsyncSession = Depends(get_db),
):
    invoices, total = await invoice_service.list_invoices(db, inv_status, po_number, page, limit)
    items = [await invoice_response(db, inv) for inv in invoices]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/pending", response_model=list[InvoiceResponse])
async def list_pending_invoices(db: AsyncSession = Depends(get_db)):
    return [await invoice_response(db, inv) for inv in await invoice_service.list_pending(db)]


@router.get("/{invoice_number}", response_model=InvoiceResponse)
async def get_invoice(invoice_number: str, db: AsyncSession = Depends(get_db)):
    inv = await invoice_service.get_invoice(db, invoice_number)
    return await invoice_response(db, inv)


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(body: InvoiceCreate, db: AsyncSession = Depends(get_db)):
    inv = await invoice_service.create_invoice(db, body)
    await db.commit()
    return await invoice_response(db, inv)


@router.put("/{invoice_number}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_number: str, body: InvoiceStatusUpdate, db: AsyncSession = Depends(get_db)
):
    inv = await invoice_service.update_status(
        db,
        invoice_number,
        body.status,
        expected_status=body.expected_status,
        expected_version=body.expected_version,
        updated_by=body.updated_by,
    )
    await db.commit()
    return await invoice_response(db, inv)
