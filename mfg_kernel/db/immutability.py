"""
ORM-Level Immutability Enforcement for the stock ledger (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

Stock on hand and every cost derived from it are sums over the movement
ledger.  If a movement row could change, yesterday's stock figure, a work
order's materials cost and a purchase order's received quantity would all
stop being reproducible.  The ledger is therefore append-only:

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through SQLAlchemy's unit of work
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (PostgreSQL triggers)
    - Catches raw SQL and bulk statements

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity         | When Immutable          | Why
---------------|-------------------------|------------------------------------
StockMovement  | ALWAYS (from creation)  | Stock = SUM(quantity); history is fixed
Product        | Never deleted           | Movements reference the SKU forever

Product attributes (name, reference cost, ...) stay mutable; only deletion
is blocked.  updated_at/updated_by_id are audit metadata and may change on
any row.

===============================================================================
USAGE
===============================================================================

    from mfg_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that need to prove detection may call
``unregister_immutability_listeners()`` and re-register afterwards.
===============================================================================
"""

from sqlalchemy import event, inspect

from mfg_kernel.exceptions import ImmutabilityViolationError
from mfg_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = ("updated_at", "updated_by_id")


def _check_movement_immutability(mapper, connection, target):
    """Block any change to a stock movement except audit metadata."""
    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": "StockMovement",
                    "entity_id": str(target.id),
                    "operation": "UPDATE",
                    "field": attr.key,
                },
            )
            raise ImmutabilityViolationError(
                entity_type="StockMovement",
                entity_id=str(target.id),
                reason=f"Cannot modify field '{attr.key}'; post an offsetting movement instead",
            )


def _check_movement_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "StockMovement",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="StockMovement",
        entity_id=str(target.id),
        reason="Stock movements cannot be deleted",
    )


def _check_product_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Product",
            "entity_id": target.sku,
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Product",
        entity_id=target.sku,
        reason="Products are never deleted",
    )


def register_immutability_listeners():
    """
    Register the ledger immutability listeners.

    Call after the kernel models are importable and before any writes.
    Safe to call more than once.
    """
    from mfg_kernel.models.movement import StockMovement
    from mfg_kernel.models.product import Product

    _safe_add_listener(StockMovement, "before_update", _check_movement_immutability)
    _safe_add_listener(StockMovement, "before_delete", _check_movement_delete)
    _safe_add_listener(Product, "before_delete", _check_product_delete)


def _safe_add_listener(target, event_name, listener_fn):
    if not event.contains(target, event_name, listener_fn):
        event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the ledger immutability listeners.

    WARNING: Only use this in tests.
    """
    from mfg_kernel.models.movement import StockMovement
    from mfg_kernel.models.product import Product

    _safe_remove_listener(StockMovement, "before_update", _check_movement_immutability)
    _safe_remove_listener(StockMovement, "before_delete", _check_movement_delete)
    _safe_remove_listener(Product, "before_delete", _check_product_delete)
