"""
Purchasing Workflows.

State machines for purchase requests (SC) and purchase orders (OC).
"""

from mfg_kernel.domain.workflow import Guard, Transition, Workflow
from mfg_kernel.logging_config import get_logger
from mfg_modules.purchasing.models import PurchaseOrderStatus, PurchaseRequestStatus

logger = get_logger("modules.purchasing.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ALL_LINES_RECEIVED = Guard(
    name="all_lines_received",
    description="Nothing is pending on any order line",
)

SOME_LINES_PENDING = Guard(
    name="some_lines_pending",
    description="At least one order line still has a pending quantity",
)


# -----------------------------------------------------------------------------
# Purchase Request Workflow
# -----------------------------------------------------------------------------

_R = PurchaseRequestStatus

PURCHASE_REQUEST_WORKFLOW = Workflow(
    name="purchase_request",
    description="Purchase request lifecycle",
    initial_state=_R.OPEN.value,
    states=tuple(s.value for s in _R),
    transitions=(
        Transition(_R.OPEN.value, _R.APPROVED.value, action="approve"),
        Transition(_R.OPEN.value, _R.REJECTED.value, action="reject"),
        Transition(_R.OPEN.value, _R.CANCELLED.value, action="cancel"),
        Transition(_R.APPROVED.value, _R.CANCELLED.value, action="cancel"),
    ),
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

_O = PurchaseOrderStatus

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order lifecycle from draft to received",
    initial_state=_O.DRAFT.value,
    states=tuple(s.value for s in _O),
    transitions=(
        Transition(_O.DRAFT.value, _O.ISSUED.value, action="issue"),
        Transition(
            _O.ISSUED.value, _O.PARTIALLY_RECEIVED.value,
            action="receive_partial", guard=SOME_LINES_PENDING,
        ),
        Transition(
            _O.PARTIALLY_RECEIVED.value, _O.PARTIALLY_RECEIVED.value,
            action="receive_partial", guard=SOME_LINES_PENDING,
        ),
        Transition(_O.ISSUED.value, _O.RECEIVED.value, action="receive_all", guard=ALL_LINES_RECEIVED),
        Transition(
            _O.PARTIALLY_RECEIVED.value, _O.RECEIVED.value,
            action="receive_all", guard=ALL_LINES_RECEIVED,
        ),
        Transition(_O.DRAFT.value, _O.CANCELLED.value, action="cancel"),
        Transition(_O.ISSUED.value, _O.CANCELLED.value, action="cancel"),
    ),
)

for _workflow in (PURCHASE_REQUEST_WORKFLOW, PURCHASE_ORDER_WORKFLOW):
    logger.info(
        "purchasing_workflow_registered",
        extra={
            "workflow_name": _workflow.name,
            "state_count": len(_workflow.states),
            "transition_count": len(_workflow.transitions),
            "initial_state": _workflow.initial_state,
        },
    )
