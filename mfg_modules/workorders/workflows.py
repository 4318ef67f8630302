"""
Work-Order Workflows.

State machine for the work-order (OT) lifecycle.  Guards are checked by
``WorkOrderService`` before it applies the transition.
"""

from mfg_kernel.domain.workflow import Guard, Transition, Workflow
from mfg_kernel.logging_config import get_logger
from mfg_modules.workorders.models import WorkOrderStatus

logger = get_logger("modules.workorders.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

MIN_MATERIAL_COVERAGE = Guard(
    name="min_material_coverage",
    description="Issued material covers the configured share of the plan (manual start only)",
)

ALL_PIECES_COMPLETE = Guard(
    name="all_pieces_complete",
    description="Every piece line has qty_done >= qty_planned",
)


# -----------------------------------------------------------------------------
# Work-Order Workflow
# -----------------------------------------------------------------------------

_DRAFT = WorkOrderStatus.DRAFT.value
_OPEN = WorkOrderStatus.OPEN.value
_IN_PROGRESS = WorkOrderStatus.IN_PROGRESS.value
_DONE = WorkOrderStatus.DONE.value
_CANCELLED = WorkOrderStatus.CANCELLED.value

WORK_ORDER_WORKFLOW = Workflow(
    name="work_order",
    description="Work-order lifecycle from draft to done",
    initial_state=_DRAFT,
    states=(_DRAFT, _OPEN, _IN_PROGRESS, _DONE, _CANCELLED),
    transitions=(
        Transition(_DRAFT, _OPEN, action="release"),
        Transition(_OPEN, _IN_PROGRESS, action="start", guard=MIN_MATERIAL_COVERAGE),
        Transition(_IN_PROGRESS, _DONE, action="complete", guard=ALL_PIECES_COMPLETE),
        Transition(_DRAFT, _CANCELLED, action="cancel"),
        Transition(_OPEN, _CANCELLED, action="cancel"),
        Transition(_IN_PROGRESS, _CANCELLED, action="cancel"),
    ),
)

logger.info(
    "work_order_workflow_registered",
    extra={
        "workflow_name": WORK_ORDER_WORKFLOW.name,
        "state_count": len(WORK_ORDER_WORKFLOW.states),
        "transition_count": len(WORK_ORDER_WORKFLOW.transitions),
        "initial_state": WORK_ORDER_WORKFLOW.initial_state,
    },
)
