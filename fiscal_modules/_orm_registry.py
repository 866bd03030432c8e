"""
Module ORM Registry (``fiscal_modules._orm_registry``).

Responsibility
--------------
Ensure kernel and module SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before
``create_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Called by ``fiscal_kernel.db.engine`` at
table-creation time only (lazy import), never at kernel import time.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``fiscal_modules.*.orm`` module.

    Idempotent -- repeated calls are harmless.
    """
    import fiscal_kernel.models  # noqa: F401
    import fiscal_kernel.services.sequence_service  # noqa: F401
    import fiscal_modules.tax.orm  # noqa: F401
