"""
Tests for the workflow primitives and the document lifecycles declared with
them.
"""

import pytest

from mfg_kernel.exceptions import InvalidTransitionError
from mfg_modules.purchasing.models import PurchaseOrderStatus, PurchaseRequestStatus
from mfg_modules.purchasing.workflows import PURCHASE_ORDER_WORKFLOW, PURCHASE_REQUEST_WORKFLOW
from mfg_modules.workorders.models import WorkOrderStatus
from mfg_modules.workorders.workflows import WORK_ORDER_WORKFLOW

ALL_WORKFLOWS = (WORK_ORDER_WORKFLOW, PURCHASE_REQUEST_WORKFLOW, PURCHASE_ORDER_WORKFLOW)


class TestWorkflowStructure:

    @pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
    def test_transitions_use_declared_states(self, workflow):
        for transition in workflow.transitions:
            assert transition.from_state in workflow.states
            assert transition.to_state in workflow.states
        assert workflow.initial_state in workflow.states

    @pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
    def test_no_duplicate_state_action_pairs(self, workflow):
        pairs = [(t.from_state, t.action) for t in workflow.transitions]
        assert len(pairs) == len(set(pairs))

    def test_unknown_action_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            WORK_ORDER_WORKFLOW.transition_for(WorkOrderStatus.DRAFT.value, "complete")

        assert exc_info.value.code == "INVALID_TRANSITION"


class TestWorkOrderWorkflow:

    def test_happy_path(self):
        state = WORK_ORDER_WORKFLOW.initial_state
        for action in ("release", "start", "complete"):
            state = WORK_ORDER_WORKFLOW.transition_for(state, action).to_state

        assert state == WorkOrderStatus.DONE.value

    def test_guards(self):
        start = WORK_ORDER_WORKFLOW.transition_for(WorkOrderStatus.OPEN.value, "start")
        complete = WORK_ORDER_WORKFLOW.transition_for(WorkOrderStatus.IN_PROGRESS.value, "complete")

        assert start.guard.name == "min_material_coverage"
        assert complete.guard.name == "all_pieces_complete"

    @pytest.mark.parametrize("status", [WorkOrderStatus.DRAFT, WorkOrderStatus.OPEN, WorkOrderStatus.IN_PROGRESS])
    def test_cancellable_states(self, status):
        assert WORK_ORDER_WORKFLOW.can(status.value, "cancel")

    def test_terminal_states(self):
        assert WORK_ORDER_WORKFLOW.terminal_states == frozenset(
            {WorkOrderStatus.DONE.value, WorkOrderStatus.CANCELLED.value}
        )


class TestPurchasingWorkflows:

    def test_request_decisions_only_from_open(self):
        assert PURCHASE_REQUEST_WORKFLOW.allowed_actions(PurchaseRequestStatus.OPEN.value)
        assert not PURCHASE_REQUEST_WORKFLOW.can(PurchaseRequestStatus.REJECTED.value, "approve")

    def test_order_receipt_path(self):
        state = PURCHASE_ORDER_WORKFLOW.transition_for(PurchaseOrderStatus.DRAFT.value, "issue").to_state
        state = PURCHASE_ORDER_WORKFLOW.transition_for(state, "receive_partial").to_state
        state = PURCHASE_ORDER_WORKFLOW.transition_for(state, "receive_partial").to_state
        state = PURCHASE_ORDER_WORKFLOW.transition_for(state, "receive_all").to_state

        assert state == PurchaseOrderStatus.RECEIVED.value

    def test_received_order_cannot_be_cancelled(self):
        assert not PURCHASE_ORDER_WORKFLOW.can(PurchaseOrderStatus.RECEIVED.value, "cancel")
