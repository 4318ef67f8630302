"""
Work-Order Module (``mfg_modules.workorders``).

Responsibility
--------------
Work orders (OT): planned materials and pieces, material issue from stock,
production hours, piece completion, the DRAFT -> OPEN -> IN_PROGRESS -> DONE
lifecycle, and the cost rollup snapshot.

Architecture
------------
Layer: **Modules**.  Rollup arithmetic lives in ``mfg_engines.rollup``,
rate precedence in ``mfg_engines.rates``, progress figures in
``mfg_engines.progress``.
"""

from mfg_modules.workorders.models import (
    IssueItem,
    MaterialLineInput,
    PieceLineInput,
    Priority,
    WorkOrder,
    WorkOrderStatus,
)
from mfg_modules.workorders.service import WorkOrderService
from mfg_modules.workorders.workflows import WORK_ORDER_WORKFLOW

__all__ = [
    "IssueItem",
    "MaterialLineInput",
    "PieceLineInput",
    "Priority",
    "WORK_ORDER_WORKFLOW",
    "WorkOrder",
    "WorkOrderService",
    "WorkOrderStatus",
]
