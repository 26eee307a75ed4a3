from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.database import get_db
from p2p.exceptions import UnprocessableError
from p2p.models.approval_history import ApprovalHistory, ACTION_APPROVED
from p2p.schemas.approval import ApprovalHistoryCreate, ApprovalHistoryResponse
from p2p.services import approval_history_service

router = APIRouter()


def _to_response(rec: ApprovalHistory) -> ApprovalHistoryResponse:
    return ApprovalHistoryResponse(
        id=str(rec.id),
        invoice_number=rec.invoice_number,
        approver_name=rec.approver_name,
        action=rec.action,
        comments=rec.comments,
        timestamp=rec.timestamp,
    )


@router.get("", response_model=list[ApprovalHistoryResponse])
async def list_approval_history(
    invoice_number: str = Query(None, alias="invoiceNumber"),
    db: AsyncSession = Depends(get_db),
):
    records = await approval_history_service.list_history(db, invoice_number)
    return [_to_response(r) for r in records]


@router.post("", response_model=ApprovalHistoryResponse, status_code=status.HTTP_201_CREATED)
async def append_approval_history(body: ApprovalHistoryCreate, db: AsyncSession = Depends(get_db)):
    # Approved records are written by the approval flow only
    if body.action.strip().casefold() == ACTION_APPROVED.casefold():
        raise UnprocessableError(
            "Approved records are written by the approval flow; use POST /invoices/{number}/approve"
        )
    record = await approval_history_service.append(
        db, body.invoice_number, body.approver_name, body.action.strip(), body.comments
    )
    await db.commit()
    return _to_response(record)
