"""
Pytest fixtures for the cost & inventory core test suite.

Provides:
- Database sessions isolated per test (outer transaction + savepoints)
- A deterministic clock and a fixed actor shared by every service fixture
- Service fixtures for inventory, costing, work orders and purchasing
- Product factory and structured log capture

Environment Variables:
- DATABASE_URL: connection URL.  Defaults to an in-memory SQLite database;
  point it at PostgreSQL (postgresql+psycopg2://...) to also exercise the
  immutability triggers.
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from mfg_config import ShopConfig, get_active_config, get_database_url
from mfg_kernel.db.engine import drop_tables, init_engine_from_url, reset_engine
from mfg_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from mfg_kernel.domain.clock import DeterministicClock
from mfg_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from mfg_modules._orm_registry import create_all_tables, import_all_orm_models
from mfg_modules.costing import CostingService
from mfg_modules.inventory import InventoryService, ProductInfo
from mfg_modules.purchasing import PurchasingService
from mfg_modules.workorders import WorkOrderService

TEST_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture mfg_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, inventory):
            inventory.adjust_stock(...)
            logs = captured_logs()
            assert any(r["message"] == "movement_appended" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("mfg_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end.

    Immutability listeners are registered once and remain active.
    """
    import_all_orm_models()
    if db_engine.dialect.name == "postgresql":
        drop_tables()
    create_all_tables()
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()
    drop_tables()


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection; every
    ``session.commit()`` made by a service only releases a savepoint.  The
    outer transaction is rolled back at teardown, so tests never see each
    other's rows.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


@pytest.fixture
def requires_postgres(db_engine):
    if db_engine.dialect.name != "postgresql":
        pytest.skip("requires PostgreSQL (set DATABASE_URL)")


# =============================================================================
# Actors, clock, configuration
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def clock() -> DeterministicClock:
    """Provide a deterministic clock shared by every service fixture."""
    return DeterministicClock()


@pytest.fixture
def shop_config() -> ShopConfig:
    return get_active_config()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def inventory(session, clock, shop_config) -> InventoryService:
    return InventoryService(session, clock, shop_config)


@pytest.fixture
def costing(session, clock, shop_config, test_actor_id) -> CostingService:
    """Costing service with the default parameters and categories seeded."""
    service = CostingService(session, clock, shop_config)
    service.ensure_defaults(test_actor_id)
    return service


@pytest.fixture
def work_orders(session, clock, shop_config, costing) -> WorkOrderService:
    return WorkOrderService(session, clock, shop_config)


@pytest.fixture
def purchasing(session, clock, shop_config, costing) -> PurchasingService:
    return PurchasingService(session, clock, shop_config)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def make_product(inventory, test_actor_id):
    """
    Register a product, optionally with opening stock.

    Opening stock is posted as a manual inbound adjustment at
    ``unit_cost``, so it also becomes the SKU's reference cost.
    """

    def _create(
        sku: str | None = None,
        name: str | None = None,
        category: str | None = None,
        stock: Decimal | None = None,
        unit_cost: Decimal = Decimal("10.00"),
        min_stock: Decimal | None = None,
    ) -> ProductInfo:
        sku = sku or f"SKU-{uuid4().hex[:8].upper()}"
        info = inventory.register_product(
            sku,
            name or f"Product {sku}",
            test_actor_id,
            category=category,
            reference_cost=unit_cost,
            min_stock=min_stock,
        )
        if stock:
            inventory.adjust_stock(sku, Decimal(stock), test_actor_id, unit_cost=unit_cost)
        return info

    return _create
