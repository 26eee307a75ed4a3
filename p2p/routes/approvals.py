from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.database import get_db
from p2p.dependencies import get_approval_orchestrator
from p2p.schemas.approval import ApprovalRequest, ApprovalResponse
from p2p.services.approval_service import ApprovalOrchestrator

router = APIRouter()


@router.post("/{invoice_number}/approve", response_model=ApprovalResponse)
async def approve_invoice(
    invoice_number: str,
    body: Optional[ApprovalRequest] = None,
    orchestrator: ApprovalOrchestrator = Depends(get_approval_orchestrator),
    db: AsyncSession = Depends(get_db),
):
    """200 when approved; otherwise the status of the rejecting check, same body shape."""
    body = body or ApprovalRequest()
    result = await orchestrator.approve_invoice(
        invoice_number, approver_name=body.approver_name, comments=body.comments
    )
    await db.commit()
    payload = ApprovalResponse(
        invoice_number=result.invoice_number,
        status=result.status,
        message=result.message,
        success=result.success,
        error_code=result.error_code,
    )
    return JSONResponse(
        status_code=result.http_status,
        content=payload.model_dump(mode="json", by_alias=True),
    )
