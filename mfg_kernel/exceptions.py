"""
Typed Exception Hierarchy for the Manufacturing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the cost and inventory core must react to failures precisely.
The UI boundary turns validation and not-found failures into inline
messages, while invariant violations must surface loudly. Matching on
message text would make that brittle, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        inventory.adjust_stock(sku, Decimal("-5"), actor_id=actor)
    except InsufficientStockError as e:
        show_inline(code=e.code, sku=e.sku, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from MfgKernelError:

    MfgKernelError (base)
    |
    +-- ValidationError
    |   +-- UnknownSkuError
    |   +-- ZeroQuantityError
    |   +-- NegativeUnitCostError
    |   +-- InsufficientStockError
    |   +-- InvalidTransitionError
    |   +-- InvalidParamValueError
    |   +-- InvalidExchangeRateError
    |   +-- CurrencyMismatchError
    |   +-- ReceiptExceedsPendingError
    |   +-- ProductionExceedsPlanError
    |   +-- DuplicateProductError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- WorkOrderNotFoundError
    |   +-- PieceLineNotFoundError
    |   +-- PurchaseRequestNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- CostingParamNotFoundError
    |
    +-- InconsistentStateError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                     | When Raised
--------------|--------------------------|-------------------------------------------
Validation    | VALIDATION_ERROR         | Malformed input (generic)
              | UNKNOWN_SKU              | Movement or line names a missing product
              | ZERO_QUANTITY            | Movement quantity is zero
              | NEGATIVE_UNIT_COST       | Unit cost below zero
              | INSUFFICIENT_STOCK       | Outgoing movement exceeds available stock
              | INVALID_TRANSITION       | Workflow action not allowed from state
              | INVALID_PARAM_VALUE      | Costing parameter fails its type rule
              | INVALID_EXCHANGE_RATE    | Conversion rate not strictly positive
              | CURRENCY_MISMATCH        | Parameters not stored in source currency
              | RECEIPT_EXCEEDS_PENDING  | Receipt larger than pending order quantity
              | PRODUCTION_EXCEEDS_PLAN  | Completed pieces would exceed plan
              | DUPLICATE_PRODUCT        | Product repeated on one document
--------------|--------------------------|-------------------------------------------
Not found     | NOT_FOUND                | Generic lookup failure
              | PRODUCT_NOT_FOUND        | SKU lookup for a catalog write
              | WORK_ORDER_NOT_FOUND     | Work order id does not exist
              | PIECE_LINE_NOT_FOUND     | Piece line not on the work order
              | PURCHASE_REQUEST_NOT_FOUND | Request id does not exist
              | PURCHASE_ORDER_NOT_FOUND | Order id does not exist
              | COSTING_PARAM_NOT_FOUND  | Parameter key does not exist
--------------|--------------------------|-------------------------------------------
State         | INCONSISTENT_STATE       | Stored data violates a schema invariant
--------------|--------------------------|-------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION   | Update/delete of a ledger row or product

===============================================================================
HANDLING GUIDANCE
===============================================================================

   - ValidationError / NotFoundError -> user-visible {ok: false, message}
   - InconsistentStateError -> log + surface, never correct silently
   - ImmutabilityViolationError -> programming error, propagate

===============================================================================
"""

from decimal import Decimal


class MfgKernelError(Exception):
    """
    Base exception for all manufacturing kernel errors.

    All subclasses must have a `code` class attribute for
    machine-readable error identification.
    """

    code: str = "MFG_KERNEL_ERROR"


# Validation exceptions


class ValidationError(MfgKernelError):
    """Malformed input. Surfaced to the caller, never retried."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnknownSkuError(ValidationError):
    """A movement or document line names a product that does not exist."""

    code: str = "UNKNOWN_SKU"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Unknown SKU: {sku}")


class ZeroQuantityError(ValidationError):
    """A movement was requested with a quantity of zero."""

    code: str = "ZERO_QUANTITY"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Movement quantity for {sku} must not be zero")


class NegativeUnitCostError(ValidationError):
    """Unit costs are never negative."""

    code: str = "NEGATIVE_UNIT_COST"

    def __init__(self, sku: str, unit_cost: Decimal):
        self.sku = sku
        self.unit_cost = str(unit_cost)
        super().__init__(f"Unit cost for {sku} must be >= 0, got {unit_cost}")


class InsufficientStockError(ValidationError):
    """An outgoing movement would take stock below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, sku: str, requested: Decimal, available: Decimal):
        self.sku = sku
        self.requested = str(requested)
        self.available = str(available)
        super().__init__(
            f"Insufficient stock for {sku}: requested {requested}, available {available}"
        )


class InvalidTransitionError(ValidationError):
    """Workflow action is not allowed from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, current_state: str, action: str, reason: str | None = None):
        self.workflow = workflow
        self.current_state = current_state
        self.action = action
        self.reason = reason
        message = f"Cannot '{action}' {workflow} in state '{current_state}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidParamValueError(ValidationError):
    """A costing parameter value does not satisfy its type rule."""

    code: str = "INVALID_PARAM_VALUE"

    def __init__(self, key: str, param_type: str, reason: str):
        self.key = key
        self.param_type = param_type
        self.reason = reason
        super().__init__(f"Invalid value for {key} ({param_type}): {reason}")


class InvalidExchangeRateError(ValidationError):
    """Exchange rates must be strictly positive."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate: Decimal):
        self.rate = str(rate)
        super().__init__(f"Exchange rate must be > 0, got {rate}")


class CurrencyMismatchError(ValidationError):
    """Parameters are not stored in the currency the caller claims."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Costing parameters are stored in {actual}, not {expected}"
        )


class ReceiptExceedsPendingError(ValidationError):
    """A receipt quantity exceeds what is still pending on the order."""

    code: str = "RECEIPT_EXCEEDS_PENDING"

    def __init__(self, order_code: str, sku: str, quantity: Decimal, pending: Decimal):
        self.order_code = order_code
        self.sku = sku
        self.quantity = str(quantity)
        self.pending = str(pending)
        super().__init__(
            f"Receipt of {quantity} {sku} exceeds pending {pending} on order {order_code}"
        )


class ProductionExceedsPlanError(ValidationError):
    """Completed pieces would exceed the planned quantity."""

    code: str = "PRODUCTION_EXCEEDS_PLAN"

    def __init__(self, piece_line_id: str, planned: Decimal, done: Decimal, quantity: Decimal):
        self.piece_line_id = piece_line_id
        self.planned = str(planned)
        self.done = str(done)
        self.quantity = str(quantity)
        super().__init__(
            f"Recording {quantity} pieces exceeds plan: {done} done of {planned} planned"
        )


class DuplicateProductError(ValidationError):
    """The same product appears twice on one document."""

    code: str = "DUPLICATE_PRODUCT"

    def __init__(self, sku: str, document: str):
        self.sku = sku
        self.document = document
        super().__init__(f"Product {sku} appears more than once on {document}")


# Not-found exceptions


class NotFoundError(MfgKernelError):
    """A referenced record does not exist. Surfaced as-is."""

    code: str = "NOT_FOUND"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Product not found: {sku}")


class WorkOrderNotFoundError(NotFoundError):
    code: str = "WORK_ORDER_NOT_FOUND"

    def __init__(self, work_order_id: str):
        self.work_order_id = work_order_id
        super().__init__(f"Work order not found: {work_order_id}")


class PieceLineNotFoundError(NotFoundError):
    code: str = "PIECE_LINE_NOT_FOUND"

    def __init__(self, work_order_id: str, piece_line_id: str):
        self.work_order_id = work_order_id
        self.piece_line_id = piece_line_id
        super().__init__(
            f"Piece line {piece_line_id} not found on work order {work_order_id}"
        )


class PurchaseRequestNotFoundError(NotFoundError):
    code: str = "PURCHASE_REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Purchase request not found: {request_id}")


class PurchaseOrderNotFoundError(NotFoundError):
    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Purchase order not found: {order_id}")


class CostingParamNotFoundError(NotFoundError):
    code: str = "COSTING_PARAM_NOT_FOUND"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Costing parameter not found: {key}")


# State exceptions


class InconsistentStateError(MfgKernelError):
    """
    Stored data violates an invariant the schema should have prevented.

    Raised after logging; the core never corrects these silently.
    """

    code: str = "INCONSISTENT_STATE"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Inconsistent state on {entity_type} {entity_id}: {reason}")


# Immutability exceptions


class ImmutabilityError(MfgKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Stock movements are immutable from creation; products are never deleted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
