"""
Purchasing Module (``mfg_modules.purchasing``).

Responsibility
--------------
Purchase requests (SC), purchase orders (OC), receipts into stock, and the
reconciliation of requested vs. ordered vs. received quantities.

Architecture
------------
Layer: **Modules**.  Pending-quantity arithmetic lives in
``mfg_engines.reconciliation``; received quantities come from the kernel
ledger.
"""

from mfg_modules.purchasing.models import (
    OrderLineInput,
    PurchaseOrder,
    PurchaseOrderStatus,
    PurchaseRequest,
    PurchaseRequestStatus,
    ReceiptLineInput,
    ReceiptResult,
    RequestLineInput,
)
from mfg_modules.purchasing.selector import PurchaseReconciliationSelector
from mfg_modules.purchasing.service import PurchasingService
from mfg_modules.purchasing.workflows import PURCHASE_ORDER_WORKFLOW, PURCHASE_REQUEST_WORKFLOW

__all__ = [
    "OrderLineInput",
    "PURCHASE_ORDER_WORKFLOW",
    "PURCHASE_REQUEST_WORKFLOW",
    "PurchaseOrder",
    "PurchaseOrderStatus",
    "PurchaseReconciliationSelector",
    "PurchaseRequest",
    "PurchaseRequestStatus",
    "PurchasingService",
    "ReceiptLineInput",
    "ReceiptResult",
    "RequestLineInput",
]
