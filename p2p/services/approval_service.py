"""
Invoice approval orchestration.

Approving an invoice checks, in order and stopping at the first failure:

  1. the invoice exists
  2. it names an approver (and the caller, if named, is that approver)
  3. already Approved -> idempotent success, nothing written
  4. it is Pending Approval
  5. the approver's safe limit covers the invoice total
  6. the purchase order exists and is not Closed
  7. every line item has a Received goods record (skipped for auto-approve)
  8. conditional status write Pending Approval -> Approved on the read version
  9. one Approved history record

Nothing is written before step 8. When step 8 is rejected or times out the
invoice is read again, so the reported status is the stored one. Every
outcome comes back as an ApprovalResult; errors are never raised to the
caller.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from p2p.clients.goods_received import GoodsReceivedClient
from p2p.clients.invoices import InvoiceClient
from p2p.clients.purchase_orders import PurchaseOrderClient
from p2p.clients.safe_limits import SafeLimitClient
from p2p.exceptions import (
    DependencyUnavailableError,
    InvalidStateError,
    P2PError,
    PolicyDeniedError,
    UnprocessableError,
)
from p2p.models.goods_received import GR_RECEIVED
from p2p.models.invoice import STATUS_APPROVED, STATUS_PENDING_APPROVAL
from p2p.models.purchase_order import PO_CLOSED
from p2p.schemas.invoice import InvoiceResponse
from p2p.services.approval_history_service import ApprovalHistoryStore

logger = structlog.get_logger()


@dataclass
class ApprovalResult:
    invoice_number: str
    success: bool
    message: str
    status: Optional[str] = None
    error_code: Optional[str] = None
    http_status: int = 200

    @classmethod
    def failed(cls, invoice_number: str, error: P2PError, status: Optional[str]) -> "ApprovalResult":
        return cls(
            invoice_number=invoice_number,
            success=False,
            message=error.message,
            status=status,
            error_code=error.code,
            http_status=error.status_code,
        )


class ApprovalOrchestrator:
    def __init__(
        self,
        invoices: InvoiceClient,
        purchase_orders: PurchaseOrderClient,
        goods_received: GoodsReceivedClient,
        safe_limits: SafeLimitClient,
        history: ApprovalHistoryStore,
    ):
        self.invoices = invoices
        self.purchase_orders = purchase_orders
        self.goods_received = goods_received
        self.safe_limits = safe_limits
        self.history = history

    async def approve_invoice(
        self,
        invoice_number: str,
        approver_name: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> ApprovalResult:
        log = logger.bind(invoice_number=invoice_number)
        invoice: Optional[InvoiceResponse] = None
        committed = False
        try:
            invoice = await self.invoices.get_invoice(invoice_number)
            approver = self._designated_approver(invoice, approver_name)

            if invoice.status == STATUS_APPROVED:
                return await self._already_approved(invoice, approver, comments)

            if invoice.status != STATUS_PENDING_APPROVAL:
                raise InvalidStateError(
                    f"Invoice {invoice_number} is {invoice.status}; "
                    f"only {STATUS_PENDING_APPROVAL} invoices can be approved",
                    current_status=invoice.status,
                )

            await self._check_safe_limit(invoice, approver)
            await self._check_purchase_order(invoice)
            if invoice.auto_approve:
                log.info("goods_received_check_skipped", reason="auto_approve")
            else:
                await self._check_goods_received(invoice)

            try:
                updated = await self.invoices.update_status(
                    invoice_number,
                    STATUS_APPROVED,
                    expected_status=STATUS_PENDING_APPROVAL,
                    expected_version=invoice.version,
                    updated_by=approver,
                )
            except P2PError as e:
                # the write may have landed or lost a race
                current = await self._current_status(invoice_number)
                log.warning(
                    "invoice_approval_failed", error_code=e.code, error=e.message, status=current
                )
                return ApprovalResult.failed(invoice_number, e, current)
            committed = True
            await self.history.record_approval(invoice_number, approver, comments)

        except P2PError as e:
            status = STATUS_APPROVED if committed else getattr(e, "current_status", None) or (
                invoice.status if invoice else None
            )
            if committed:
                e = DependencyUnavailableError(
                    "approval history",
                    f"Invoice {invoice_number} was approved but its history record "
                    f"could not be written ({e.message}); approve again to record it",
                )
            log.warning("invoice_approval_failed", error_code=e.code, error=e.message)
            return ApprovalResult.failed(invoice_number, e, status)
        except Exception as e:
            log.exception("invoice_approval_crashed", error=str(e))
            err = DependencyUnavailableError(
                "approval", f"Approval of invoice {invoice_number} failed unexpectedly"
            )
            return ApprovalResult.failed(
                invoice_number,
                err,
                STATUS_APPROVED if committed else (invoice.status if invoice else None),
            )

        log.info("invoice_approved", approver=approver, total=str(invoice.total), version=updated.version)
        return ApprovalResult(
            invoice_number=invoice_number,
            success=True,
            message=f"Invoice {invoice_number} approved by {approver}",
            status=updated.status,
        )

    @staticmethod
    def _designated_approver(invoice: InvoiceResponse, approver_name: Optional[str]) -> str:
        approver = (invoice.approver or "").strip()
        if not approver:
            raise UnprocessableError(
                f"Invoice {invoice.invoice_number} has no approver designated"
            )
        if approver_name and approver_name.strip().casefold() != approver.casefold():
            raise PolicyDeniedError(
                f"Only {approver} is authorized to approve invoice {invoice.invoice_number}"
            )
        return approver

    async def _already_approved(
        self, invoice: InvoiceResponse, approver: str, comments: Optional[str]
    ) -> ApprovalResult:
        if not await self.history.has_approval(invoice.invoice_number):
            # status was committed by an attempt that never wrote its history
            await self.history.record_approval(invoice.invoice_number, approver, comments)
            logger.info("approval_history_backfilled", invoice_number=invoice.invoice_number)
        return ApprovalResult(
            invoice_number=invoice.invoice_number,
            success=True,
            message=f"Invoice {invoice.invoice_number} is already approved",
            status=STATUS_APPROVED,
        )

    async def _current_status(self, invoice_number: str) -> Optional[str]:
        """Status as the invoice store now reports it, None when it cannot be read."""
        try:
            return (await self.invoices.get_invoice(invoice_number)).status
        except P2PError as e:
            logger.warning("invoice_status_unknown", invoice_number=invoice_number, error=e.message)
            return None

    async def _check_safe_limit(self, invoice: InvoiceResponse, approver: str) -> None:
        check = await self.safe_limits.check(approver, invoice.total)
        if check.can_approve:
            return
        if check.approval_limit is None:
            raise PolicyDeniedError(f"{approver} has no approval limit on record")
        raise PolicyDeniedError(
            f"{approver} cannot approve {invoice.total} {invoice.currency}: "
            f"approval limit is {check.approval_limit}"
        )

    async def _check_purchase_order(self, invoice: InvoiceResponse) -> None:
        po = await self.purchase_orders.get_purchase_order(invoice.po_number)
        if po.status == PO_CLOSED:
            raise InvalidStateError(f"Purchase order {po.po_number} is closed")

    async def _check_goods_received(self, invoice: InvoiceResponse) -> None:
        seen = set()
        for line in invoice.line_items:
            if line.item_id in seen:
                continue
            seen.add(line.item_id)
            records = await self.goods_received.list_for_item(invoice.po_number, line.item_id)
            if not any(r.status == GR_RECEIVED for r in records):
                raise PolicyDeniedError(
                    f"Item {line.item_id} on purchase order {invoice.po_number} has not been received"
                )
