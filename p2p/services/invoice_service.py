"""
Invoice store.

Owns invoice rows and their line items. Status changes go through
``update_status``, a conditional update on the expected status and version,
so two writers racing on the same invoice cannot both win.
"""

import uuid
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select, func, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p2p.config import settings
from p2p.exceptions import (
    ConcurrencyConflictError,
    InvalidStateError,
    NotFoundError,
)
from p2p.models.invoice import (
    Invoice,
    InvoiceLineItem,
    ALLOWED_TRANSITIONS,
    STATUS_DRAFT,
    STATUS_PENDING_APPROVAL,
)
from p2p.schemas.invoice import InvoiceCreate
from p2p.services.approver import resolve_approver
from p2p.services.pricing import compute_totals, line_total, money

logger = structlog.get_logger()

INVOICE_PREFIX = "INV"
DRAFT_PREFIX = "DRAFT"


def new_draft_number() -> str:
    return f"{DRAFT_PREFIX}-{uuid.uuid4().hex[:10].upper()}"


async def next_invoice_number(db: AsyncSession) -> str:
    """Sequential INV-NNNNNN, skipping numbers already taken."""
    count_result = await db.execute(
        select(func.count(Invoice.id)).where(Invoice.status != STATUS_DRAFT)
    )
    count = (count_result.scalar() or 0) + 1
    while True:
        number = f"{INVOICE_PREFIX}-{count:06d}"
        taken = await db.execute(select(Invoice.id).where(Invoice.invoice_number == number))
        if taken.scalar_one_or_none() is None:
            return number
        count += 1


async def get_line_items(db: AsyncSession, invoice_id) -> list[InvoiceLineItem]:
    result = await db.execute(
        select(InvoiceLineItem)
        .where(InvoiceLineItem.invoice_id == invoice_id)
        .order_by(InvoiceLineItem.line_number)
    )
    return list(result.scalars().all())


async def find_invoice(db: AsyncSession, invoice_number: str) -> Optional[Invoice]:
    result = await db.execute(
        select(Invoice).where(Invoice.invoice_number == invoice_number)
    )
    return result.scalar_one_or_none()


async def get_invoice(db: AsyncSession, invoice_number: str) -> Invoice:
    inv = await find_invoice(db, invoice_number)
    if not inv:
        raise NotFoundError("Invoice", invoice_number)
    return inv


async def list_invoices(
    db: AsyncSession,
    inv_status: Optional[str] = None,
    po_number: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Invoice], int]:
    q = select(Invoice)
    count_q = select(func.count(Invoice.id))
    if inv_status:
        q = q.where(Invoice.status == inv_status)
        count_q = count_q.where(Invoice.status == inv_status)
    if po_number:
        q = q.where(Invoice.po_number == po_number)
        count_q = count_q.where(Invoice.po_number == po_number)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(Invoice.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def find_active_for_po(
    db: AsyncSession, po_number: str, exclude_id=None
) -> Optional[Invoice]:
    """The non-Draft invoice billed against a PO, if any."""
    q = select(Invoice).where(
        Invoice.po_number == po_number, Invoice.status != STATUS_DRAFT
    )
    if exclude_id is not None:
        q = q.where(Invoice.id != exclude_id)
    result = await db.execute(q.limit(1))
    return result.scalar_one_or_none()


async def _replace_line_items(db: AsyncSession, inv: Invoice, body: InvoiceCreate) -> None:
    await db.execute(delete(InvoiceLineItem).where(InvoiceLineItem.invoice_id == inv.id))
    for idx, li in enumerate(body.line_items, start=1):
        db.add(InvoiceLineItem(
            invoice_id=inv.id,
            line_number=idx,
            item_id=li.item_id,
            description=li.description,
            quantity=li.quantity,
            unit_price=money(li.unit_price),
            total_price=line_total(li.quantity, li.unit_price),
        ))


async def create_invoice(
    db: AsyncSession,
    body: InvoiceCreate,
    requested_approver: Optional[str] = None,
    po_requestor: Optional[str] = None,
) -> Invoice:
    """
    Persist an invoice, computing line totals, subtotal and total.

    A Draft already stored under the same number is overwritten in place;
    any other existing invoice with that number is a conflict.
    """
    subtotal, total = compute_totals(
        [(li.quantity, li.unit_price) for li in body.line_items],
        tax=body.tax,
        shipping=body.shipping,
    )
    requested = requested_approver or body.approver
    approver = resolve_approver(total, requested=requested, po_requestor=po_requestor)

    if body.status == STATUS_DRAFT:
        number = body.invoice_number or new_draft_number()
    else:
        number = body.invoice_number or await next_invoice_number(db)

    if body.status != STATUS_DRAFT and await find_active_for_po(db, body.po_number):
        raise InvalidStateError(
            f"Purchase order {body.po_number} already has an active invoice"
        )

    invoice_date = body.invoice_date or date.today()
    fields = dict(
        po_number=body.po_number,
        supplier_name=body.supplier_name,
        supplier_id=body.supplier_id,
        invoice_date=invoice_date,
        due_date=body.due_date or invoice_date + timedelta(days=settings.INVOICE_DUE_DAYS),
        approver=approver,
        requested_approver=requested,
        auto_approve=body.auto_approve,
        subtotal=subtotal,
        tax=money(body.tax),
        shipping=money(body.shipping),
        total=total,
        currency=body.currency or settings.DEFAULT_CURRENCY,
        status=body.status,
    )

    inv = await find_invoice(db, number)
    overwritten = inv is not None
    if overwritten:
        if inv.status != STATUS_DRAFT:
            raise InvalidStateError(
                f"Invoice {number} already exists", current_status=inv.status
            )
        for key, value in fields.items():
            setattr(inv, key, value)
    else:
        inv = Invoice(invoice_number=number, **fields)
        db.add(inv)
    try:
        await db.flush()
    except IntegrityError:
        raise ConcurrencyConflictError(
            f"Invoice {number} or an active invoice for {body.po_number} was created concurrently"
        )
    if overwritten:
        logger.info("invoice_draft_overwritten", invoice_number=number)

    await _replace_line_items(db, inv, body)
    await db.flush()

    logger.info(
        "invoice_created",
        invoice_number=number,
        po_number=body.po_number,
        status=body.status,
        total=str(total),
        approver=approver,
    )
    return inv


async def update_status(
    db: AsyncSession,
    invoice_number: str,
    new_status: str,
    expected_status: Optional[str] = None,
    expected_version: Optional[int] = None,
    updated_by: Optional[str] = None,
) -> Invoice:
    inv = await get_invoice(db, invoice_number)

    if expected_status is not None and inv.status != expected_status:
        raise ConcurrencyConflictError(
            f"Invoice {invoice_number} is {inv.status}, expected {expected_status}",
            current_status=inv.status,
        )
    if expected_version is not None and inv.version != expected_version:
        raise ConcurrencyConflictError(
            f"Invoice {invoice_number} was modified (version {inv.version}, expected {expected_version})",
            current_status=inv.status,
        )
    if new_status not in ALLOWED_TRANSITIONS.get(inv.status, set()):
        raise InvalidStateError(
            f"Cannot move invoice {invoice_number} from {inv.status} to {new_status}",
            current_status=inv.status,
        )
    if inv.status == STATUS_DRAFT and new_status == STATUS_PENDING_APPROVAL and not inv.approver:
        raise InvalidStateError(
            f"Invoice {invoice_number} has no approver", current_status=inv.status
        )

    read_status, read_version = inv.status, inv.version
    try:
        result = await db.execute(
            update(Invoice)
            .where(
                Invoice.id == inv.id,
                Invoice.status == read_status,
                Invoice.version == read_version,
            )
            .values(status=new_status, version=Invoice.version + 1)
            .execution_options(synchronize_session=False)
        )
    except IntegrityError:
        raise InvalidStateError(
            f"Purchase order {inv.po_number} already has an active invoice",
            current_status=read_status,
        )
    if result.rowcount != 1:
        raise ConcurrencyConflictError(
            f"Invoice {invoice_number} changed while updating its status"
        )
    await db.refresh(inv)

    logger.info(
        "invoice_status_changed",
        invoice_number=invoice_number,
        from_status=read_status,
        to_status=new_status,
        version=inv.version,
        updated_by=updated_by,
    )
    return inv


async def list_pending(db: AsyncSession) -> list[Invoice]:
    result = await db.execute(
        select(Invoice)
        .where(Invoice.status == STATUS_PENDING_APPROVAL)
        .order_by(Invoice.invoice_date, Invoice.invoice_number)
    )
    return list(result.scalars().all())
