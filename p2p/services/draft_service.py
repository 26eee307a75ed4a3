"""
Invoice drafts generated from purchase orders.

A draft copies the PO's supplier and lines, recomputes every total, and can
be edited with InvoiceOverrides until it is finalized into a numbered
Pending Approval invoice. Drafts are invoice rows with status Draft and a
DRAFT- number; finalizing promotes the same row.

Purchase orders are reached only through PurchaseOrderClient. Calls that
write to the PO store happen before this session writes anything; when the
session write then fails it is rolled back and the draft counter change is
reversed.
"""

from datetime import date, timedelta
from typing import Any, Awaitable, Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
import structlog

from p2p.clients.purchase_orders import PurchaseOrderClient
from p2p.config import settings
from p2p.exceptions import ConcurrencyConflictError, InvalidStateError, P2PError
from p2p.models.invoice import Invoice, STATUS_DRAFT, STATUS_PENDING_APPROVAL
from p2p.models.purchase_order import PO_CLOSED
from p2p.schemas.invoice import InvoiceCreate, InvoiceLineItemCreate, InvoiceOverrides
from p2p.schemas.purchase_order import PurchaseOrderResponse
from p2p.services import invoice_service
from p2p.services.approver import resolve_approver
from p2p.services.pricing import compute_totals, money

logger = structlog.get_logger()


def build_draft(po: PurchaseOrderResponse, overrides: InvoiceOverrides) -> InvoiceCreate:
    """Invoice skeleton for a PO with overrides applied. Totals are computed on save."""
    invoice_date = overrides.invoice_date or date.today()
    return InvoiceCreate(
        invoice_number=invoice_service.new_draft_number(),
        po_number=po.po_number,
        supplier_name=po.supplier_name,
        supplier_id=po.supplier_id,
        invoice_date=invoice_date,
        due_date=overrides.due_date or invoice_date + timedelta(days=settings.INVOICE_DUE_DAYS),
        approver=overrides.approver,
        auto_approve=po.auto_approve,
        tax=po.tax if overrides.tax is None else overrides.tax,
        shipping=po.shipping if overrides.shipping is None else overrides.shipping,
        currency=overrides.currency or po.currency,
        status=STATUS_DRAFT,
        line_items=[
            InvoiceLineItemCreate(
                item_id=li.item_id,
                description=li.description,
                quantity=li.quantity,
                unit_price=li.unit_price,
            )
            for li in po.line_items
        ],
    )


class InvoiceDraftService:
    def __init__(self, db: AsyncSession, purchase_orders: PurchaseOrderClient):
        self.db = db
        self.purchase_orders = purchase_orders

    async def _open_purchase_order(self, po_number: str) -> PurchaseOrderResponse:
        po = await self.purchase_orders.get_purchase_order(po_number)
        if po.status == PO_CLOSED:
            raise InvalidStateError(f"Purchase order {po_number} is closed")
        return po

    async def _get_draft(self, draft_number: str) -> Invoice:
        inv = await invoice_service.get_invoice(self.db, draft_number)
        if inv.status != STATUS_DRAFT:
            raise InvalidStateError(
                f"Invoice {draft_number} is {inv.status}, not a draft",
                current_status=inv.status,
            )
        return inv

    async def generate_template(
        self, po_number: str, overrides: InvoiceOverrides = None
    ) -> Invoice:
        overrides = overrides or InvoiceOverrides()
        po = await self._open_purchase_order(po_number)
        body = build_draft(po, overrides)

        await self.purchase_orders.increment_draft_count(po_number)
        try:
            inv = await invoice_service.create_invoice(
                self.db,
                body,
                requested_approver=overrides.approver,
                po_requestor=po.requestor_name,
            )
        except Exception:
            await self._restore_draft_count(po_number, self.purchase_orders.decrement_draft_count)
            raise
        logger.info(
            "invoice_draft_generated",
            draft_number=inv.invoice_number,
            po_number=po_number,
            total=str(inv.total),
            approver=inv.approver,
        )
        return inv

    async def edit_draft(self, draft_number: str, overrides: InvoiceOverrides) -> Invoice:
        inv = await self._get_draft(draft_number)
        po = await self.purchase_orders.get_purchase_order(inv.po_number)

        if overrides.invoice_date is not None:
            inv.invoice_date = overrides.invoice_date
        if overrides.due_date is not None:
            inv.due_date = overrides.due_date
        elif overrides.invoice_date is not None:
            inv.due_date = overrides.invoice_date + timedelta(days=settings.INVOICE_DUE_DAYS)
        if overrides.currency is not None:
            inv.currency = overrides.currency
        if overrides.tax is not None:
            inv.tax = money(overrides.tax)
        if overrides.shipping is not None:
            inv.shipping = money(overrides.shipping)
        if overrides.approver is not None:
            inv.requested_approver = overrides.approver

        lines = await invoice_service.get_line_items(self.db, inv.id)
        inv.subtotal, inv.total = compute_totals(
            [(li.quantity, li.unit_price) for li in lines],
            tax=inv.tax,
            shipping=inv.shipping,
        )
        inv.approver = resolve_approver(
            inv.total, requested=inv.requested_approver, po_requestor=po.requestor_name
        )
        try:
            await self.db.flush()
        except StaleDataError:
            raise ConcurrencyConflictError(f"Draft {draft_number} was modified concurrently")

        logger.info(
            "invoice_draft_edited",
            draft_number=draft_number,
            fields=sorted(overrides.model_fields_set),
            total=str(inv.total),
        )
        return inv

    async def finalize(self, draft_number: str) -> Invoice:
        inv = await self._get_draft(draft_number)
        po = await self._open_purchase_order(inv.po_number)

        active = await invoice_service.find_active_for_po(self.db, inv.po_number, exclude_id=inv.id)
        if active is not None:
            raise InvalidStateError(
                f"Purchase order {inv.po_number} already has invoice {active.invoice_number}",
                current_status=active.status,
            )

        approver = resolve_approver(
            inv.total, requested=inv.requested_approver, po_requestor=po.requestor_name
        )
        number = await invoice_service.next_invoice_number(self.db)
        po_number = inv.po_number

        await self.purchase_orders.decrement_draft_count(po_number)

        inv.invoice_number = number
        inv.status = STATUS_PENDING_APPROVAL
        inv.approver = approver
        inv.auto_approve = po.auto_approve
        try:
            await self.db.flush()
        except StaleDataError:
            await self._restore_draft_count(po_number, self.purchase_orders.increment_draft_count)
            raise ConcurrencyConflictError(f"Draft {draft_number} was modified concurrently")
        except IntegrityError:
            await self._restore_draft_count(po_number, self.purchase_orders.increment_draft_count)
            raise ConcurrencyConflictError(
                f"Invoice number {number} or an invoice for {po_number} was taken concurrently"
            )
        except Exception:
            await self._restore_draft_count(po_number, self.purchase_orders.increment_draft_count)
            raise

        logger.info(
            "invoice_draft_finalized",
            draft_number=draft_number,
            invoice_number=number,
            po_number=po_number,
            approver=approver,
        )
        return inv

    async def _restore_draft_count(
        self, po_number: str, restore: Callable[[str], Awaitable[Any]]
    ) -> None:
        """Undo a draft counter change after this session's own write failed."""
        await self.db.rollback()
        try:
            await restore(po_number)
        except P2PError as e:
            logger.error("draft_count_restore_failed", po_number=po_number, error=e.message)
        else:
            logger.info("draft_count_restored", po_number=po_number)
