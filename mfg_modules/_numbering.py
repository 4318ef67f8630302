"""
Document code generation shared by work orders and purchasing documents.

Codes read ``PREFIX-YYYYMM-NNNN``: the month comes from the injected clock
and the sequence restarts every month.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import InstrumentedAttribute, Session

from mfg_kernel.domain.clock import Clock


def next_document_code(
    session: Session,
    code_column: InstrumentedAttribute,
    prefix: str,
    clock: Clock,
) -> str:
    """Next free code for ``prefix`` in the clock's current month."""
    stem = f"{prefix}-{clock.now():%Y%m}-"
    existing = session.execute(
        select(code_column).where(code_column.like(f"{stem}%"))
    ).scalars().all()

    highest = 0
    for code in existing:
        suffix = code[len(stem):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{stem}{highest + 1:04d}"
