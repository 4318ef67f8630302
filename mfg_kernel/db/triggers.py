"""
Module: mfg_kernel.db.triggers
Responsibility: Installing and removing the PostgreSQL triggers that make the
    stock ledger append-only at the database level.  Complements the ORM
    listeners in db/immutability.py, which only see changes made through the
    ORM unit of work.
Architecture position: Kernel > DB.  Imports sqlalchemy only.

Invariants enforced:
    - stock_movements rows: no UPDATE, no DELETE, ever.
    - products rows: no DELETE.

Failure modes:
    - PostgreSQL RAISE EXCEPTION on a violating statement, surfaced by
      SQLAlchemy as an InternalError/IntegrityError.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from mfg_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

_FUNCTION_SQL = """
CREATE OR REPLACE FUNCTION mfg_reject_mutation() RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION 'IMMUTABILITY_VIOLATION: % on % is not allowed', TG_OP, TG_TABLE_NAME;
END;
$$ LANGUAGE plpgsql;
"""

# (trigger name, table, operations)
TRIGGERS: tuple[tuple[str, str, str], ...] = (
    ("trg_stock_movements_no_update", "stock_movements", "UPDATE"),
    ("trg_stock_movements_no_delete", "stock_movements", "DELETE"),
    ("trg_products_no_delete", "products", "DELETE"),
)

ALL_TRIGGER_NAMES = [name for name, _, _ in TRIGGERS]


def install_immutability_triggers(engine: Engine) -> None:
    """Create (or replace) the guard function and every ledger trigger."""
    with engine.begin() as conn:
        conn.execute(text(_FUNCTION_SQL))
        for name, table, operation in TRIGGERS:
            conn.execute(text(f"DROP TRIGGER IF EXISTS {name} ON {table}"))
            conn.execute(
                text(
                    f"CREATE TRIGGER {name} BEFORE {operation} ON {table} "
                    f"FOR EACH ROW EXECUTE FUNCTION mfg_reject_mutation()"
                )
            )
    logger.info("immutability_triggers_installed", extra={"triggers": ALL_TRIGGER_NAMES})


def uninstall_immutability_triggers(engine: Engine) -> None:
    with engine.begin() as conn:
        for name, table, _ in TRIGGERS:
            conn.execute(text(f"DROP TRIGGER IF EXISTS {name} ON {table}"))
        conn.execute(text("DROP FUNCTION IF EXISTS mfg_reject_mutation()"))


def triggers_installed(engine: Engine) -> bool:
    """True when every ledger trigger exists (PostgreSQL only)."""
    if engine.dialect.name != "postgresql":
        return False
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT tgname FROM pg_trigger WHERE tgname = ANY(:names)"),
            {"names": ALL_TRIGGER_NAMES},
        ).scalars().all()
    return set(rows) == set(ALL_TRIGGER_NAMES)
