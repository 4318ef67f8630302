"""
Tests for ledger immutability.

Layer 1 (ORM listeners) runs on every backend.  Layer 2 (PostgreSQL
triggers) is exercised only when DATABASE_URL points at PostgreSQL.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError

from mfg_kernel.domain.movements import MovementKind
from mfg_kernel.exceptions import ImmutabilityViolationError
from mfg_kernel.models.movement import StockMovement
from mfg_kernel.models.product import Product
from mfg_kernel.services.ledger_writer import LedgerWriter


@pytest.fixture
def movement(session, clock, make_product, test_actor_id) -> StockMovement:
    product = make_product()
    record = LedgerWriter(session, clock).append(
        sku=product.sku,
        kind=MovementKind.PURCHASE_RECEIPT,
        quantity=Decimal("5"),
        unit_cost=Decimal("2.00"),
        actor_id=test_actor_id,
    )
    session.commit()
    return session.get(StockMovement, record.id)


class TestOrmImmutability:

    @pytest.mark.parametrize(
        "field, value",
        [
            ("quantity", Decimal("50")),
            ("unit_cost", Decimal("0.01")),
            ("kind", MovementKind.MANUAL_ADJUSTMENT_IN.value),
            ("note", "edited"),
        ],
    )
    def test_update_is_blocked(self, session, movement, field, value):
        setattr(movement, field, value)

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
        session.rollback()

    def test_delete_is_blocked(self, session, movement):
        session.delete(movement)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_product_delete_is_blocked(self, session, make_product):
        sku = make_product().sku
        product = session.execute(select(Product).where(Product.sku == sku)).scalar_one()
        session.delete(product)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_product_attributes_stay_mutable(self, session, make_product, test_actor_id):
        sku = make_product().sku
        product = session.execute(select(Product).where(Product.sku == sku)).scalar_one()

        product.name = "Renamed"
        product.updated_by_id = test_actor_id
        session.flush()

        assert product.name == "Renamed"

    def test_violation_is_logged(self, session, movement, captured_logs):
        movement.quantity = Decimal("1")

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[-1]["entity_type"] == "StockMovement"
        assert blocked[-1]["field"] == "quantity"


@pytest.mark.postgres
class TestTriggerImmutability:

    def test_raw_update_is_rejected(self, requires_postgres, session, movement):
        with pytest.raises(DBAPIError, match="IMMUTABILITY_VIOLATION"):
            session.execute(
                text("UPDATE stock_movements SET quantity = 0 WHERE id = :id"),
                {"id": str(movement.id)},
            )
        session.rollback()

    def test_raw_delete_is_rejected(self, requires_postgres, session, movement):
        with pytest.raises(DBAPIError, match="IMMUTABILITY_VIOLATION"):
            session.execute(
                text("DELETE FROM stock_movements WHERE id = :id"),
                {"id": str(movement.id)},
            )
        session.rollback()
