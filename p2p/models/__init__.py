"""Central model registry. Importing it registers every table on Base.metadata."""

from p2p.database import Base  # noqa: F401

from p2p.models.purchase_order import PurchaseOrder, PoLineItem  # noqa: F401
from p2p.models.invoice import Invoice, InvoiceLineItem  # noqa: F401
from p2p.models.goods_received import GoodsReceivedRecord  # noqa: F401
from p2p.models.safe_limit import SafeLimit  # noqa: F401
from p2p.models.approval_history import ApprovalHistory  # noqa: F401
