from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from p2p.database import get_db
from p2p.models.safe_limit import SafeLimit
from p2p.schemas.safe_limit import (
    ApprovalCheckRequest,
    ApprovalCheckResponse,
    LimitIncreaseRequest,
    SafeLimitCreate,
    SafeLimitResponse,
)
from p2p.services import safe_limit_service

router = APIRouter()


def _to_response(limit: SafeLimit) -> SafeLimitResponse:
    return SafeLimitResponse(
        user_id=limit.user_id,
        user_name=limit.user_name,
        approval_limit=limit.approval_limit,
        currency=limit.currency,
        role=limit.role,
    )


@router.get("", response_model=list[SafeLimitResponse])
async def list_safe_limits(db: AsyncSession = Depends(get_db)):
    return [_to_response(sl) for sl in await safe_limit_service.list_limits(db)]


@router.get("/user/{user_id}", response_model=SafeLimitResponse)
async def get_safe_limit_by_user(user_id: str, db: AsyncSession = Depends(get_db)):
    return _to_response(await safe_limit_service.get_by_user_id(db, user_id))


@router.get("/name/{user_name}", response_model=SafeLimitResponse)
async def get_safe_limit_by_name(user_name: str, db: AsyncSession = Depends(get_db)):
    return _to_response(await safe_limit_service.get_by_user_name(db, user_name))


@router.post("", response_model=SafeLimitResponse, status_code=status.HTTP_201_CREATED)
async def create_safe_limit(body: SafeLimitCreate, db: AsyncSession = Depends(get_db)):
    limit = await safe_limit_service.create_limit(db, body)
    await db.commit()
    return _to_response(limit)


@router.post("/check", response_model=ApprovalCheckResponse)
async def check_safe_limit(body: ApprovalCheckRequest, db: AsyncSession = Depends(get_db)):
    can_approve, approval_limit = await safe_limit_service.check(
        db, body.user_name, body.invoice_amount
    )
    return ApprovalCheckResponse(
        can_approve=can_approve,
        approval_limit=approval_limit,
        invoice_amount=body.invoice_amount,
    )


@router.put("/increase", response_model=SafeLimitResponse)
async def increase_safe_limit(body: LimitIncreaseRequest, db: AsyncSession = Depends(get_db)):
    limit = await safe_limit_service.increase_limit(
        db, body.user_id, body.new_limit, body.justification
    )
    await db.commit()
    return _to_response(limit)
