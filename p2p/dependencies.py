"""FastAPI dependencies wiring the typed clients into the orchestrator and draft generator."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.clients.goods_received import GoodsReceivedClient
from p2p.clients.invoices import InvoiceClient
from p2p.clients.purchase_orders import PurchaseOrderClient
from p2p.clients.safe_limits import SafeLimitClient
from p2p.config import settings
from p2p.database import get_db
from p2p.services.approval_history_service import ApprovalHistoryStore
from p2p.services.approval_service import ApprovalOrchestrator
from p2p.services.draft_service import InvoiceDraftService


def get_invoice_client() -> InvoiceClient:
    return InvoiceClient(settings.INVOICE_API_URL)


def get_purchase_order_client() -> PurchaseOrderClient:
    return PurchaseOrderClient(settings.PURCHASE_ORDER_API_URL)


def get_goods_received_client() -> GoodsReceivedClient:
    return GoodsReceivedClient(settings.GOODS_RECEIVED_API_URL)


def get_safe_limit_client() -> SafeLimitClient:
    return SafeLimitClient(settings.SAFE_LIMIT_API_URL)


def get_approval_orchestrator(
    db: AsyncSession = Depends(get_db),
    invoices: InvoiceClient = Depends(get_invoice_client),
    purchase_orders: PurchaseOrderClient = Depends(get_purchase_order_client),
    goods_received: GoodsReceivedClient = Depends(get_goods_received_client),
    safe_limits: SafeLimitClient = Depends(get_safe_limit_client),
) -> ApprovalOrchestrator:
    return ApprovalOrchestrator(
        invoices=invoices,
        purchase_orders=purchase_orders,
        goods_received=goods_received,
        safe_limits=safe_limits,
        history=ApprovalHistoryStore(db),
    )


def get_draft_service(
    db: AsyncSession = Depends(get_db),
    purchase_orders: PurchaseOrderClient = Depends(get_purchase_order_client),
) -> InvoiceDraftService:
    return InvoiceDraftService(db, purchase_orders)
