"""
DocumentRef -- typed pointer from a stock movement to the document that caused it.

Responsibility:
    Replaces an untyped (table name, id) pair with a closed sum type.  A
    movement references a work order, a purchase order, or nothing at all
    (manual adjustments); ``None`` is the "nothing" case.

Architecture position:
    Kernel > Domain -- pure, no ORM imports.  ``to_columns``/``from_columns``
    are the only bridge to the two persisted columns on ``stock_movements``.

Invariants enforced:
    - ``kind`` is always a ``DocumentKind`` member.
    - Persisted columns are both null or both set; a half-populated pair is
      reported as ``InconsistentStateError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from mfg_kernel.exceptions import InconsistentStateError


class DocumentKind(str, Enum):
    """Document kinds that may own stock movements."""

    WORK_ORDER = "work_order"
    PURCHASE_ORDER = "purchase_order"


@dataclass(frozen=True)
class DocumentRef:
    """
    Immutable reference to an owning document.

    Self-describing pointer carrying both the kind and the identifier, so
    callers can match exhaustively on ``kind`` instead of comparing strings.
    """

    kind: DocumentKind
    document_id: UUID

    def __post_init__(self) -> None:
        if not isinstance(self.kind, DocumentKind):
            raise ValueError(f"kind must be DocumentKind, got {type(self.kind)}")
        if not isinstance(self.document_id, UUID):
            raise ValueError(f"document_id must be UUID, got {type(self.document_id)}")

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.document_id}"

    @classmethod
    def parse(cls, ref_string: str) -> DocumentRef:
        """Parse the ``kind:uuid`` form produced by ``__str__``."""
        try:
            kind_str, id_str = ref_string.split(":", 1)
            return cls(kind=DocumentKind(kind_str), document_id=UUID(id_str))
        except ValueError as exc:
            raise ValueError(f"Invalid document reference: {ref_string!r}") from exc

    @classmethod
    def work_order(cls, work_order_id: UUID) -> DocumentRef:
        return cls(DocumentKind.WORK_ORDER, work_order_id)

    @classmethod
    def purchase_order(cls, order_id: UUID) -> DocumentRef:
        return cls(DocumentKind.PURCHASE_ORDER, order_id)

    @property
    def is_work_order(self) -> bool:
        return self.kind is DocumentKind.WORK_ORDER

    @property
    def is_purchase_order(self) -> bool:
        return self.kind is DocumentKind.PURCHASE_ORDER


def to_columns(ref: DocumentRef | None) -> tuple[str | None, UUID | None]:
    """Split a reference into its (ref_kind, ref_id) column values."""
    if ref is None:
        return None, None
    return ref.kind.value, ref.document_id


def from_columns(
    ref_kind: str | None,
    ref_id: UUID | None,
    *,
    movement_id: UUID | None = None,
) -> DocumentRef | None:
    """Rebuild a reference from persisted columns."""
    if ref_kind is None and ref_id is None:
        return None
    if ref_kind is None or ref_id is None:
        raise InconsistentStateError(
            entity_type="StockMovement",
            entity_id=str(movement_id),
            reason=f"half-populated document reference ({ref_kind!r}, {ref_id!r})",
        )
    try:
        kind = DocumentKind(ref_kind)
    except ValueError as exc:
        raise InconsistentStateError(
            entity_type="StockMovement",
            entity_id=str(movement_id),
            reason=f"unknown document kind {ref_kind!r}",
        ) from exc
    return DocumentRef(kind, ref_id)
