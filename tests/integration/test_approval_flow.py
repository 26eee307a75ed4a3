"""
End-to-end flows over HTTP: stores are populated through their endpoints,
then invoices are drafted, finalized and approved. The orchestrator and draft
generator call back into the same app through the typed clients.
"""

import asyncio

import pytest
from httpx import AsyncClient

API = "/api/v1"


async def _create_po(client: AsyncClient, po_number="PO-100", requestor="Alice", auto_approve=False,
                     lines=(("ITEM-1", 2, 5000), ("ITEM-2", 1, 2000)), **extra):
    body = {
        "poNumber": po_number,
        "supplierName": "Acme Office Supply",
        "requestorName": requestor,
        "autoApprove": auto_approve,
        "lineItems": [
            {"itemId": item, "description": item.lower(), "quantity": q, "unitPrice": p}
            for item, q, p in lines
        ],
        **extra,
    }
    resp = await client.post(f"{API}/purchaseorders", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _receive(client: AsyncClient, po_number, item_id, status="Received"):
    resp = await client.post(
        f"{API}/goodsreceived",
        json={"poNumber": po_number, "itemId": item_id, "status": status},
    )
    assert resp.status_code == 201, resp.text


async def _limit(client: AsyncClient, user_id, user_name, limit):
    resp = await client.post(
        f"{API}/safelimits",
        json={"userId": user_id, "userName": user_name, "approvalLimit": limit},
    )
    assert resp.status_code == 201, resp.text


async def _create_invoice(client: AsyncClient, number="INV-1", po_number="PO-100", approver="Alice",
                          lines=(("ITEM-1", 2, 5000), ("ITEM-2", 1, 2000)), **extra):
    body = {
        "invoiceNumber": number,
        "poNumber": po_number,
        "approver": approver,
        "lineItems": [{"itemId": i, "quantity": q, "unitPrice": p} for i, q, p in lines],
        **extra,
    }
    resp = await client.post(f"{API}/invoices", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _scenario(client: AsyncClient, alice_limit=15000, item2_status="Received"):
    await _create_po(client)
    await _receive(client, "PO-100", "ITEM-1")
    await _receive(client, "PO-100", "ITEM-2", status=item2_status)
    await _limit(client, "U-001", "Alice", alice_limit)
    return await _create_invoice(client)


async def _history(client: AsyncClient, number="INV-1"):
    resp = await client.get(f"{API}/approvalhistory", params={"invoiceNumber": number})
    assert resp.status_code == 200
    return resp.json()


# ---------------------------------------------------------------------------
# Approval scenarios
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_invoice_approved_when_all_checks_pass(client):
    inv = await _scenario(client)
    assert inv["total"] == 12000.0

    resp = await client.post(f"{API}/invoices/INV-1/approve", json={"approverName": "Alice"})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["status"] == "Approved"
    assert body["invoiceNumber"] == "INV-1"
    assert body["errorCode"] is None

    stored = (await client.get(f"{API}/invoices/INV-1")).json()
    assert stored["status"] == "Approved"
    assert stored["version"] == inv["version"] + 1

    history = await _history(client)
    assert len(history) == 1
    assert history[0]["action"] == "Approved"
    assert history[0]["approverName"] == "Alice"


@pytest.mark.asyncio
async def test_approving_twice_is_idempotent(client):
    await _scenario(client)

    first = await client.post(f"{API}/invoices/INV-1/approve")
    second = await client.post(f"{API}/invoices/INV-1/approve")

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["success"] is True
    assert "already approved" in second.json()["message"]
    assert len(await _history(client)) == 1


@pytest.mark.asyncio
async def test_missing_goods_receipt_blocks_approval(client):
    await _scenario(client, item2_status="Not Received")

    resp = await client.post(f"{API}/invoices/INV-1/approve")

    assert resp.status_code == 403
    body = resp.json()
    assert body["success"] is False
    assert body["errorCode"] == "POLICY_DENIED"
    assert "ITEM-2" in body["message"]
    assert (await client.get(f"{API}/invoices/INV-1")).json()["status"] == "Pending Approval"
    assert await _history(client) == []


@pytest.mark.asyncio
async def test_insufficient_limit_blocks_approval(client):
    await _scenario(client, alice_limit=10000)

    resp = await client.post(f"{API}/invoices/INV-1/approve")

    assert resp.status_code == 403
    assert "10000" in resp.json()["message"]
    stored = (await client.get(f"{API}/invoices/INV-1")).json()
    assert stored["status"] == "Pending Approval"
    assert await _history(client) == []


@pytest.mark.asyncio
async def test_auto_approve_bypasses_goods_received(client):
    await _create_po(client, auto_approve=True)
    await _limit(client, "U-001", "Alice", 15000)
    await _create_invoice(client, autoApprove=True)

    resp = await client.post(f"{API}/invoices/INV-1/approve")

    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "Approved"


@pytest.mark.asyncio
async def test_closed_po_blocks_approval(client):
    await _scenario(client)
    resp = await client.put(f"{API}/purchaseorders/PO-100/status", json={"status": "Closed"})
    assert resp.status_code == 200

    resp = await client.post(f"{API}/invoices/INV-1/approve")

    assert resp.status_code == 409
    assert resp.json()["errorCode"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_unknown_invoice_is_404_with_approval_body(client):
    resp = await client.post(f"{API}/invoices/INV-404/approve")

    assert resp.status_code == 404
    assert resp.json() == {
        "invoiceNumber": "INV-404",
        "status": None,
        "message": "Invoice INV-404 not found",
        "success": False,
        "errorCode": "NOT_FOUND",
    }


@pytest.mark.asyncio
async def test_wrong_approver_is_denied(client):
    await _scenario(client)

    resp = await client.post(f"{API}/invoices/INV-1/approve", json={"approverName": "Bob"})

    assert resp.status_code == 403
    assert "Only Alice" in resp.json()["message"]


# ---------------------------------------------------------------------------
# Draft generation through to approval
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_draft_generate_edit_finalize_approve(client):
    await _create_po(client, lines=(("ITEM-1", 3, 10), ("ITEM-2", 1, 5)), tax=2.5)
    await _receive(client, "PO-100", "ITEM-1")
    await _receive(client, "PO-100", "ITEM-2")
    await _limit(client, "U-001", "Alice", 1000)

    resp = await client.post(f"{API}/invoices/drafts", json={"poNumber": "PO-100"})
    assert resp.status_code == 201, resp.text
    draft = resp.json()
    assert draft["status"] == "Draft"
    assert draft["invoiceNumber"].startswith("DRAFT-")
    assert draft["subtotal"] == 35.0
    assert draft["approver"] == "Alice"
    po = (await client.get(f"{API}/purchaseorders/PO-100")).json()
    assert po["draftCount"] == 1

    resp = await client.patch(
        f"{API}/invoices/drafts/{draft['invoiceNumber']}",
        json={"overrides": {"shipping": 15.0, "unknownField": "x"}},
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["total"] == 52.5

    draft_approve = await client.post(f"{API}/invoices/{draft['invoiceNumber']}/approve")
    assert draft_approve.status_code == 409

    resp = await client.post(f"{API}/invoices/drafts/{draft['invoiceNumber']}/finalize")
    assert resp.status_code == 200, resp.text
    final = resp.json()
    assert final["invoiceNumber"] == "INV-000001"
    assert final["status"] == "Pending Approval"
    assert (await client.get(f"{API}/purchaseorders/PO-100")).json()["draftCount"] == 0

    pending = (await client.get(f"{API}/invoices/pending")).json()
    assert [i["invoiceNumber"] for i in pending] == ["INV-000001"]

    resp = await client.post(f"{API}/invoices/INV-000001/approve")
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "Approved"


@pytest.mark.asyncio
async def test_tiered_draft_denied_when_tier_limit_too_low(client):
    await _create_po(client, requestor=None, lines=(("ITEM-1", 6, 10000),))
    await _receive(client, "PO-100", "ITEM-1")
    await _limit(client, "U-103", "Executive Approver", 50000)

    draft = (await client.post(f"{API}/invoices/drafts", json={"poNumber": "PO-100"})).json()
    assert draft["approver"] == "Executive Approver"
    final = (await client.post(f"{API}/invoices/drafts/{draft['invoiceNumber']}/finalize")).json()

    resp = await client.post(f"{API}/invoices/{final['invoiceNumber']}/approve")

    assert resp.status_code == 403
    assert resp.json()["errorCode"] == "POLICY_DENIED"


@pytest.mark.asyncio
async def test_draft_for_closed_po_is_rejected(client):
    await _create_po(client, status="Closed")

    resp = await client.post(f"{API}/invoices/drafts", json={"poNumber": "PO-100"})

    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_draft_for_unknown_po_is_404(client):
    resp = await client.post(f"{API}/invoices/drafts", json={"poNumber": "PO-404"})

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


# ---------------------------------------------------------------------------
# Concurrent callers
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_concurrent_approvals_all_report_approved_status(client):
    await _scenario(client)

    responses = await asyncio.gather(
        *(client.post(f"{API}/invoices/INV-1/approve") for _ in range(3))
    )

    bodies = [r.json() for r in responses]
    assert [b["status"] for b in bodies] == ["Approved"] * 3, bodies
    assert any(b["success"] for b in bodies)
    assert len(await _history(client)) == 1


@pytest.mark.asyncio
async def test_concurrent_finalize_keeps_draft_count_in_step(client):
    await _create_po(client)
    first = (await client.post(f"{API}/invoices/drafts", json={"poNumber": "PO-100"})).json()
    second = (await client.post(f"{API}/invoices/drafts", json={"poNumber": "PO-100"})).json()
    assert (await client.get(f"{API}/purchaseorders/PO-100")).json()["draftCount"] == 2

    responses = await asyncio.gather(
        client.post(f"{API}/invoices/drafts/{first['invoiceNumber']}/finalize"),
        client.post(f"{API}/invoices/drafts/{second['invoiceNumber']}/finalize"),
    )

    assert sorted(r.status_code for r in responses) == [200, 409]
    invoices = (await client.get(f"{API}/invoices", params={"poNumber": "PO-100"})).json()["data"]
    drafts_left = [i for i in invoices if i["status"] == "Draft"]
    active = [i for i in invoices if i["status"] != "Draft"]
    assert len(drafts_left) == 1
    assert [i["invoiceNumber"] for i in active] == ["INV-000001"]
    po = (await client.get(f"{API}/purchaseorders/PO-100")).json()
    assert po["draftCount"] == len(drafts_left)
