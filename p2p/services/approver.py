"""
Who is asked to approve an invoice.

Precedence: an explicitly requested approver, then the PO requestor, then a
tier picked from the invoice total. The result is only a routing decision;
the approver's safe limit is checked again when they approve.
"""

from decimal import Decimal
from typing import Optional

from p2p.config import settings


def tier_approver(total: Decimal) -> str:
    if total <= settings.APPROVER_TIER_JUNIOR_MAX:
        return settings.APPROVER_JUNIOR
    if total <= settings.APPROVER_TIER_SENIOR_MAX:
        return settings.APPROVER_SENIOR
    return settings.APPROVER_EXECUTIVE


def _clean(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    name = name.strip()
    return name or None


def resolve_approver(
    total: Decimal,
    requested: Optional[str] = None,
    po_requestor: Optional[str] = None,
) -> str:
    return _clean(requested) or _clean(po_requestor) or tier_approver(total)
