from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.database import get_db
from p2p.dependencies import get_draft_service
from p2p.routes.invoices import invoice_response
from p2p.schemas.invoice import DraftCreate, DraftEdit, InvoiceResponse
from p2p.services.draft_service import InvoiceDraftService

router = APIRouter()


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def generate_draft(
    body: DraftCreate,
    drafts: InvoiceDraftService = Depends(get_draft_service),
    db: AsyncSession = Depends(get_db),
):
    inv = await drafts.generate_template(body.po_number, body.overrides)
    await db.commit()
    return await invoice_response(db, inv)


@router.patch("/{draft_number}", response_model=InvoiceResponse)
async def edit_draft(
    draft_number: str,
    body: DraftEdit,
    drafts: InvoiceDraftService = Depends(get_draft_service),
    db: AsyncSession = Depends(get_db),
):
    inv = await drafts.edit_draft(draft_number, body.overrides)
    await db.commit()
    return await invoice_response(db, inv)


@router.post("/{draft_number}/finalize", response_model=InvoiceResponse)
async def finalize_draft(
    draft_number: str,
    drafts: InvoiceDraftService = Depends(get_draft_service),
    db: AsyncSession = Depends(get_db),
):
    inv = await drafts.finalize(draft_number)
    await db.commit()
    return await invoice_response(db, inv)
