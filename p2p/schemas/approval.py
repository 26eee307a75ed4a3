from datetime import datetime
from typing import Optional

from pydantic import Field

from p2p.schemas.common import CamelModel


class ApprovalRequest(CamelModel):
    approver_name: Optional[str] = None
    comments: Optional[str] = Field(None, max_length=500)


class ApprovalResponse(CamelModel):
    invoice_number: str
    status: Optional[str] = None
    message: str
    success: bool
    error_code: Optional[str] = None


class ApprovalHistoryCreate(CamelModel):
    invoice_number: str = Field(..., min_length=1)
    approver_name: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1, max_length=50)
    comments: Optional[str] = Field(None, max_length=500)


class ApprovalHistoryResponse(CamelModel):
    id: str
    invoice_number: str
    approver_name: str
    action: str
    comments: Optional[str] = None
    timestamp: datetime
