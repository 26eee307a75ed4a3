"""
Unit tests for p2p/services/approval_service.py

The four store clients and the history store are AsyncMock fakes, so each
test controls exactly what every check sees and can assert which calls were
(and were not) made.
"""

import asyncio
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from p2p.exceptions import (
    ConcurrencyConflictError,
    DataIntegrityError,
    DependencyUnavailableError,
    NotFoundError,
)
from p2p.schemas.goods_received import GoodsReceivedResponse
from p2p.schemas.invoice import InvoiceLineItemResponse, InvoiceResponse
from p2p.schemas.purchase_order import PurchaseOrderResponse
from p2p.schemas.safe_limit import ApprovalCheckResponse
from p2p.services.approval_service import ApprovalOrchestrator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _invoice(
    status: str = "Pending Approval",
    approver="Alice",
    total: str = "12000.00",
    auto_approve: bool = False,
    items=("ITEM-1", "ITEM-2"),
    version: int = 3,
) -> InvoiceResponse:
    return InvoiceResponse(
        invoice_number="INV-1",
        po_number="PO-100",
        invoice_date=date.today(),
        approver=approver,
        auto_approve=auto_approve,
        line_items=[
            InvoiceLineItemResponse(
                line_number=i, item_id=item, quantity=1,
                unit_price=Decimal("1.00"), total_price=Decimal("1.00"),
            )
            for i, item in enumerate(items, start=1)
        ],
        subtotal=Decimal(total),
        tax=Decimal("0"),
        shipping=Decimal("0"),
        total=Decimal(total),
        currency="USD",
        status=status,
        version=version,
    )


def _po(status: str = "Open") -> PurchaseOrderResponse:
    return PurchaseOrderResponse(
        po_number="PO-100",
        supplier_name="Acme Office Supply",
        status=status,
        subtotal=Decimal("12000.00"),
        tax=Decimal("0"),
        shipping=Decimal("0"),
        total=Decimal("12000.00"),
        currency="USD",
    )


def _gr(item_id: str, status: str = "Received") -> GoodsReceivedResponse:
    return GoodsReceivedResponse(id=item_id, po_number="PO-100", item_id=item_id, status=status)


def _harness(
    invoice=None,
    can_approve: bool = True,
    approval_limit="15000.00",
    po_status: str = "Open",
    received=None,
    already_recorded: bool = False,
):
    invoice = invoice or _invoice()
    if received is None:
        received = {li.item_id: [_gr(li.item_id)] for li in invoice.line_items}

    invoices = AsyncMock()
    invoices.get_invoice.return_value = invoice
    invoices.update_status.return_value = invoice.model_copy(
        update={"status": "Approved", "version": invoice.version + 1}
    )

    safe_limits = AsyncMock()
    safe_limits.check.return_value = ApprovalCheckResponse(
        can_approve=can_approve,
        approval_limit=Decimal(approval_limit) if approval_limit is not None else None,
        invoice_amount=invoice.total,
    )

    purchase_orders = AsyncMock()
    purchase_orders.get_purchase_order.return_value = _po(po_status)

    goods_received = AsyncMock()
    goods_received.list_for_item.side_effect = lambda po_number, item_id: received.get(item_id, [])

    history = AsyncMock()
    history.has_approval.return_value = already_recorded
    history.record_approval.return_value = True

    h = SimpleNamespace(
        invoices=invoices,
        safe_limits=safe_limits,
        purchase_orders=purchase_orders,
        goods_received=goods_received,
        history=history,
    )
    h.orchestrator = ApprovalOrchestrator(
        invoices=invoices,
        purchase_orders=purchase_orders,
        goods_received=goods_received,
        safe_limits=safe_limits,
        history=history,
    )
    return h


def _assert_nothing_written(h):
    h.invoices.update_status.assert_not_awaited()
    h.history.record_approval.assert_not_awaited()


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_approves_when_every_check_passes():
    """INV-1: PO-100 open, total 12,000, Alice limit 15,000, both items received."""
    h = _harness()

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is True
    assert result.status == "Approved"
    assert result.http_status == 200
    assert result.error_code is None
    h.invoices.update_status.assert_awaited_once_with(
        "INV-1",
        "Approved",
        expected_status="Pending Approval",
        expected_version=3,
        updated_by="Alice",
    )
    h.history.record_approval.assert_awaited_once_with("INV-1", "Alice", None)


@pytest.mark.asyncio
async def test_limit_is_checked_against_invoice_total():
    h = _harness(invoice=_invoice(total="9876.54"))

    await h.orchestrator.approve_invoice("INV-1")

    h.safe_limits.check.assert_awaited_once_with("Alice", Decimal("9876.54"))


@pytest.mark.asyncio
async def test_named_approver_matches_case_insensitively():
    h = _harness()

    result = await h.orchestrator.approve_invoice("INV-1", approver_name="  aLiCe ", comments="ok")

    assert result.success is True
    h.history.record_approval.assert_awaited_once_with("INV-1", "Alice", "ok")


@pytest.mark.asyncio
async def test_auto_approve_skips_goods_received_entirely():
    h = _harness(invoice=_invoice(auto_approve=True), received={})

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is True
    h.goods_received.list_for_item.assert_not_awaited()
    h.invoices.update_status.assert_awaited_once()


@pytest.mark.asyncio
async def test_duplicate_line_items_are_checked_once():
    h = _harness(invoice=_invoice(items=("ITEM-1", "ITEM-1", "ITEM-2")))

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is True
    assert h.goods_received.list_for_item.await_count == 2


# ---------------------------------------------------------------------------
# Idempotence
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_already_approved_is_success_without_writes():
    h = _harness(invoice=_invoice(status="Approved"), already_recorded=True)

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is True
    assert result.status == "Approved"
    assert "already approved" in result.message
    _assert_nothing_written(h)
    h.safe_limits.check.assert_not_awaited()


@pytest.mark.asyncio
async def test_already_approved_backfills_missing_history_once():
    h = _harness(invoice=_invoice(status="Approved"), already_recorded=False)

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is True
    h.invoices.update_status.assert_not_awaited()
    h.history.record_approval.assert_awaited_once_with("INV-1", "Alice", None)


# ---------------------------------------------------------------------------
# Rejections, in check order
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_missing_invoice_is_not_found():
    h = _harness()
    h.invoices.get_invoice.side_effect = NotFoundError("Invoice", "INV-404")

    result = await h.orchestrator.approve_invoice("INV-404")

    assert result.success is False
    assert result.error_code == "NOT_FOUND"
    assert result.http_status == 404
    assert result.status is None
    _assert_nothing_written(h)


@pytest.mark.parametrize("approver", [None, "", "   "])
@pytest.mark.asyncio
async def test_invoice_without_approver_is_unprocessable(approver):
    h = _harness(invoice=_invoice(approver=approver))

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "UNPROCESSABLE"
    assert result.http_status == 422
    assert result.status == "Pending Approval"
    h.safe_limits.check.assert_not_awaited()
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_wrong_named_approver_is_denied():
    h = _harness()

    result = await h.orchestrator.approve_invoice("INV-1", approver_name="Mallory")

    assert result.error_code == "POLICY_DENIED"
    assert "Only Alice" in result.message
    h.safe_limits.check.assert_not_awaited()
    _assert_nothing_written(h)


@pytest.mark.parametrize("status", ["Draft", "Paid"])
@pytest.mark.asyncio
async def test_non_pending_invoice_is_invalid_state(status):
    h = _harness(invoice=_invoice(status=status))

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "INVALID_STATE"
    assert result.http_status == 409
    assert result.status == status
    assert status in result.message
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_limit_below_total_is_denied_citing_limit():
    h = _harness(can_approve=False, approval_limit="10000.00")

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is False
    assert result.error_code == "POLICY_DENIED"
    assert result.http_status == 403
    assert "10000.00" in result.message
    assert "Alice" in result.message
    assert result.status == "Pending Approval"
    h.purchase_orders.get_purchase_order.assert_not_awaited()
    h.goods_received.list_for_item.assert_not_awaited()
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_approver_without_limit_record_is_denied():
    h = _harness(can_approve=False, approval_limit=None)

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "POLICY_DENIED"
    assert "no approval limit" in result.message


@pytest.mark.asyncio
async def test_tiered_approver_is_still_limit_checked():
    """A 60,000 invoice routed to the executive tier is denied when that limit is lower."""
    h = _harness(
        invoice=_invoice(approver="Executive Approver", total="60000.00"),
        can_approve=False,
        approval_limit="50000.00",
    )

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "POLICY_DENIED"
    assert "Executive Approver" in result.message
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_closed_purchase_order_is_invalid_state():
    h = _harness(po_status="Closed")

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "INVALID_STATE"
    assert "closed" in result.message
    h.goods_received.list_for_item.assert_not_awaited()
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_missing_purchase_order_is_not_found():
    h = _harness()
    h.purchase_orders.get_purchase_order.side_effect = NotFoundError("Purchase order", "PO-100")

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "NOT_FOUND"
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_missing_goods_on_item_three_of_five_stops_there():
    items = ("ITEM-1", "ITEM-2", "ITEM-3", "ITEM-4", "ITEM-5")
    received = {i: [_gr(i)] for i in items}
    received["ITEM-3"] = [_gr("ITEM-3", status="Not Received")]
    h = _harness(invoice=_invoice(items=items), received=received)

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is False
    assert result.error_code == "POLICY_DENIED"
    assert "ITEM-3" in result.message
    assert h.goods_received.list_for_item.await_count == 3
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_item_with_no_goods_records_is_denied():
    h = _harness(received={"ITEM-1": [_gr("ITEM-1")]})

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "POLICY_DENIED"
    assert "ITEM-2" in result.message


@pytest.mark.asyncio
async def test_one_received_unit_is_enough_for_an_item():
    received = {
        "ITEM-1": [_gr("ITEM-1", "Not Received"), _gr("ITEM-1")],
        "ITEM-2": [_gr("ITEM-2")],
    }
    h = _harness(received=received)

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is True


# ---------------------------------------------------------------------------
# Dependency failures and races
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_dependency_timeout_is_reported_not_retried():
    h = _harness()
    h.safe_limits.check.side_effect = DependencyUnavailableError(
        "safe limit service", "safe limit service did not answer within 10.0s"
    )

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "DEPENDENCY_UNAVAILABLE"
    assert result.http_status == 503
    assert h.safe_limits.check.await_count == 1
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_malformed_dependency_response_is_data_integrity():
    h = _harness()
    h.goods_received.list_for_item.side_effect = DataIntegrityError(
        "goods received service", "malformed"
    )

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "DATA_INTEGRITY"
    assert result.http_status == 502
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_dependency_unavailable():
    h = _harness()
    h.purchase_orders.get_purchase_order.side_effect = RuntimeError("boom")

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is False
    assert result.error_code == "DEPENDENCY_UNAVAILABLE"
    _assert_nothing_written(h)


@pytest.mark.asyncio
async def test_concurrent_status_change_reports_stored_status():
    h = _harness()
    # the client rebuilds the conflict from the envelope without a current status
    h.invoices.update_status.side_effect = ConcurrencyConflictError(
        "Invoice INV-1 is Approved, expected Pending Approval"
    )
    h.invoices.get_invoice.side_effect = [_invoice(), _invoice(status="Approved", version=4)]

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is False
    assert result.error_code == "CONCURRENT_MODIFICATION"
    assert result.http_status == 409
    assert result.status == "Approved"
    assert h.invoices.get_invoice.await_count == 2
    h.history.record_approval.assert_not_awaited()


@pytest.mark.asyncio
async def test_status_write_timeout_reports_stored_status():
    h = _harness()
    h.invoices.update_status.side_effect = DependencyUnavailableError(
        "invoice service", "invoice service did not answer within 10.0s"
    )
    h.invoices.get_invoice.side_effect = [_invoice(), _invoice(status="Approved", version=4)]

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is False
    assert result.error_code == "DEPENDENCY_UNAVAILABLE"
    assert result.status == "Approved"


@pytest.mark.asyncio
async def test_status_unknown_when_reread_also_fails():
    h = _harness()
    h.invoices.update_status.side_effect = DependencyUnavailableError(
        "invoice service", "invoice service is unreachable"
    )
    h.invoices.get_invoice.side_effect = [
        _invoice(),
        DependencyUnavailableError("invoice service", "invoice service is unreachable"),
    ]

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.error_code == "DEPENDENCY_UNAVAILABLE"
    assert result.status is None


@pytest.mark.asyncio
async def test_history_failure_after_commit_reports_approved_status():
    h = _harness()
    h.history.record_approval.side_effect = RuntimeError("disk full")

    result = await h.orchestrator.approve_invoice("INV-1")

    assert result.success is False
    assert result.status == "Approved"
    assert result.error_code == "DEPENDENCY_UNAVAILABLE"


@pytest.mark.asyncio
async def test_cancellation_aborts_without_side_effects():
    h = _harness()
    h.goods_received.list_for_item.side_effect = asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await h.orchestrator.approve_invoice("INV-1")

    _assert_nothing_written(h)
