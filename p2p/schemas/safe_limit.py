from typing import Optional

from pydantic import Field

from p2p.schemas.common import CamelModel, Money


class SafeLimitCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    user_name: str = Field(..., min_length=1)
    approval_limit: Money = Field(..., ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    role: Optional[str] = None


class SafeLimitResponse(CamelModel):
    user_id: str
    user_name: str
    approval_limit: Money
    currency: str
    role: Optional[str] = None


class ApprovalCheckRequest(CamelModel):
    user_name: str = Field(..., min_length=1)
    invoice_amount: Money = Field(..., ge=0)


class ApprovalCheckResponse(CamelModel):
    can_approve: bool
    approval_limit: Optional[Money] = None
    invoice_amount: Money


class LimitIncreaseRequest(CamelModel):
    user_id: str = Field(..., min_length=1)
    new_limit: Money = Field(..., gt=0)
    justification: str = Field(..., min_length=1)
