"""
Seed script: purchase orders, goods received, safe limits and one pending invoice.
Run from the project root: python -m scripts.seed
"""
import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select

from p2p.database import AsyncSessionLocal, close_db, init_db
from p2p.models.approval_history import ApprovalHistory  # noqa: F401
from p2p.models.goods_received import GoodsReceivedRecord, GR_RECEIVED, GR_NOT_RECEIVED
from p2p.models.invoice import Invoice, InvoiceLineItem, STATUS_PENDING_APPROVAL
from p2p.models.purchase_order import PurchaseOrder, PoLineItem, PO_OPEN, PO_CLOSED
from p2p.models.safe_limit import SafeLimit
from p2p.services.pricing import compute_totals, line_total

TODAY = date.today()

# po_number -> (supplier, requestor, status, auto_approve, [(item_id, description, qty, unit_price)])
PURCHASE_ORDERS = {
    "PO-100": ("Acme Office Supply", "Alice", PO_OPEN, False, [
        ("ITEM-1", "Standing desk", 2, Decimal("5000.00")),
        ("ITEM-2", "Monitor arm", 1, Decimal("2000.00")),
    ]),
    "PO-200": ("Northwind Logistics", None, PO_OPEN, True, [
        ("SVC-1", "Freight handling", 1, Decimal("4500.00")),
    ]),
    "PO-300": ("Contoso Hardware", "Bob", PO_CLOSED, False, [
        ("ITEM-9", "Rack server", 3, Decimal("21000.00")),
    ]),
}

# (po_number, item_id, serial, asset_tag, status)
GOODS_RECEIVED = [
    ("PO-100", "ITEM-1", "SN-1001", "AT-5001", GR_RECEIVED),
    ("PO-100", "ITEM-1", "SN-1002", "AT-5002", GR_RECEIVED),
    ("PO-100", "ITEM-2", "SN-2001", "AT-6001", GR_RECEIVED),
    ("PO-300", "ITEM-9", "SN-9001", "AT-9001", GR_NOT_RECEIVED),
]

# (user_id, user_name, limit, role)
SAFE_LIMITS = [
    ("U-001", "Alice", Decimal("15000.00"), "Procurement Manager"),
    ("U-002", "Bob", Decimal("5000.00"), "Buyer"),
    ("U-101", "Junior Approver", Decimal("10000.00"), "Approver"),
    ("U-102", "Senior Approver", Decimal("50000.00"), "Approver"),
    ("U-103", "Executive Approver", Decimal("250000.00"), "Executive"),
]


async def seed():
    await init_db(create_tables=True)
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(PurchaseOrder).where(PurchaseOrder.po_number == "PO-100"))
        if result.scalar_one_or_none():
            print("Seed data already exists. Skipping.")
            return

        # --- Purchase orders ---
        for po_number, (supplier, requestor, po_status, auto, lines) in PURCHASE_ORDERS.items():
            subtotal, total = compute_totals([(q, p) for _, _, q, p in lines])
            po = PurchaseOrder(
                po_number=po_number,
                supplier_name=supplier,
                order_date=TODAY - timedelta(days=14),
                expected_delivery_date=TODAY - timedelta(days=2),
                shipping_address="1 Harbor Way, Springfield",
                status=po_status,
                auto_approve=auto,
                requestor_name=requestor,
                subtotal=subtotal,
                total=total,
                currency="USD",
            )
            db.add(po)
            await db.flush()
            for idx, (item_id, desc, qty, price) in enumerate(lines, start=1):
                db.add(PoLineItem(
                    po_id=po.id, line_number=idx, item_id=item_id, description=desc,
                    quantity=qty, unit_price=price, total_price=line_total(qty, price),
                ))

        # --- Goods received ---
        for po_number, item_id, serial, tag, gr_status in GOODS_RECEIVED:
            db.add(GoodsReceivedRecord(
                po_number=po_number, item_id=item_id, serial_number=serial,
                asset_tag_number=tag, status=gr_status,
                received_date=TODAY - timedelta(days=1) if gr_status == GR_RECEIVED else None,
            ))

        # --- Safe limits ---
        for user_id, user_name, limit, role in SAFE_LIMITS:
            db.add(SafeLimit(
                user_id=user_id, user_name=user_name, approval_limit=limit,
                currency="USD", role=role,
            ))

        # --- Pending invoice for PO-100 ---
        supplier, requestor, _, auto, lines = PURCHASE_ORDERS["PO-100"]
        subtotal, total = compute_totals([(q, p) for _, _, q, p in lines])
        inv = Invoice(
            invoice_number="INV-000001",
            po_number="PO-100",
            supplier_name=supplier,
            invoice_date=TODAY,
            due_date=TODAY + timedelta(days=30),
            approver=requestor,
            auto_approve=auto,
            subtotal=subtotal,
            total=total,
            currency="USD",
            status=STATUS_PENDING_APPROVAL,
        )
        db.add(inv)
        await db.flush()
        for idx, (item_id, desc, qty, price) in enumerate(lines, start=1):
            db.add(InvoiceLineItem(
                invoice_id=inv.id, line_number=idx, item_id=item_id, description=desc,
                quantity=qty, unit_price=price, total_price=line_total(qty, price),
            ))

        await db.commit()
        print("Seed data inserted successfully!")
        print(f"  Purchase orders: {len(PURCHASE_ORDERS)}")
        print(f"  Goods received records: {len(GOODS_RECEIVED)}")
        print(f"  Safe limits: {len(SAFE_LIMITS)}")
        print("  Invoices: 1 (INV-000001, Pending Approval, approver Alice)")
    await close_db()


if __name__ == "__main__":
    asyncio.run(seed())
