"""
Module ORM Registry (``mfg_modules._orm_registry``).

Responsibility
--------------
Ensure the kernel models and every module ORM model are imported so that
``Base.metadata`` holds their table definitions before tables are created.
``create_all_tables()`` is the entry point scripts and ``tests/conftest.py``
use to get the complete schema.

Architecture position
---------------------
**Modules layer** -- utility.  Imports sibling ``mfg_modules`` packages and
``mfg_kernel.db.engine`` (modules -> kernel is allowed).  MUST NOT be
imported by ``mfg_kernel``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``mfg_modules.*.orm`` module.

    Kernel tables first: work orders and purchase orders reference
    ``products.sku``.  Idempotent.
    """
    import mfg_kernel.models  # noqa: F401
    # fmt: off
    import mfg_modules.costing.orm  # noqa: F401
    import mfg_modules.workorders.orm  # noqa: F401
    import mfg_modules.purchasing.orm  # noqa: F401
    # fmt: on


def create_all_tables(install_triggers: bool = True) -> None:
    """Create kernel + module tables, then optionally install the ledger triggers.

    Preconditions:
        Engine must be initialized via ``init_engine_from_url()``.
    """
    from mfg_kernel.db.engine import create_tables

    import_all_orm_models()
    create_tables(install_triggers=install_triggers)
