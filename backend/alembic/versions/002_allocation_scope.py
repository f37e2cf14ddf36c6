"""allocation_scope

Revision ID: 002_allocation_scope
Revises: 001_quoter_schema
Create Date: 2026-10-02

Adds ``scope`` and ``applied_count`` to the four real-cost tables and
backfills every row so no record is left without an explicit scope:

- rows imported from the previous app carry 'unidad' / 'parcial' / 'total';
  these are renamed to per_unit / partial / total
- rows with no scope get the category default
  (materials, labor → per_unit; ant_expenses, transport → total)

A CHECK constraint then keeps the column to the three known values.
"""
import logging
from alembic import op
import sqlalchemy as sa
from sqlalchemy import text

revision = '002_allocation_scope'
down_revision = '001_quoter_schema'
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.002")

# Frozen copy of the defaults at the time of this migration.
_DEFAULT_SCOPES = {
    'material_actuals': 'per_unit',
    'labor_actuals': 'per_unit',
    'ant_expenses': 'total',
    'transport_actuals': 'total',
}

_RENAMES = {
    'unidad': 'per_unit',
    'parcial': 'partial',
    'total': 'total',
}


def _table_exists(conn, table_name: str) -> bool:
    result = conn.execute(
        text(
            "SELECT EXISTS("
            "  SELECT 1 FROM information_schema.tables"
            "  WHERE table_name = :tname"
            ")"
        ),
        {"tname": table_name},
    )
    return bool(result.scalar())


def _column_exists(conn, table_name: str, column_name: str) -> bool:
    result = conn.execute(
        text(
            "SELECT EXISTS("
            "  SELECT 1 FROM information_schema.columns"
            "  WHERE table_name = :tname AND column_name = :cname"
            ")"
        ),
        {"tname": table_name, "cname": column_name},
    )
    return bool(result.scalar())


def upgrade() -> None:
    conn = op.get_bind()

    for table, default_scope in _DEFAULT_SCOPES.items():
        if not _table_exists(conn, table):
            logger.info("Table %s missing; skipping", table)
            continue

        if not _column_exists(conn, table, 'scope'):
            op.add_column(table, sa.Column('scope', sa.String(20), nullable=True))
        if not _column_exists(conn, table, 'applied_count'):
            op.add_column(table, sa.Column('applied_count', sa.Integer, nullable=True))

        for old, new in _RENAMES.items():
            if old != new:
                conn.execute(
                    text(f"UPDATE {table} SET scope = :new WHERE lower(scope) = :old"),
                    {"new": new, "old": old},
                )

        result = conn.execute(
            text(f"UPDATE {table} SET scope = :scope WHERE scope IS NULL OR scope = ''"),
            {"scope": default_scope},
        )
        logger.info("Backfilled %d rows in %s with scope %s", result.rowcount, table, default_scope)

        # A partial record without a count covers a single unit.
        conn.execute(
            text(
                f"UPDATE {table} SET applied_count = 1 "
                "WHERE scope = 'partial' AND (applied_count IS NULL OR applied_count < 1)"
            )
        )
        conn.execute(text(f"UPDATE {table} SET applied_count = NULL WHERE scope <> 'partial'"))

        op.create_check_constraint(
            f"ck_{table}_scope",
            table,
            "scope IN ('per_unit', 'partial', 'total')",
        )


def downgrade() -> None:
    conn = op.get_bind()

    for table in _DEFAULT_SCOPES:
        if not _table_exists(conn, table):
            continue
        op.drop_constraint(f"ck_{table}_scope", table, type_="check")
        with op.batch_alter_table(table) as batch_op:
            for col in ['applied_count', 'scope']:
                if _column_exists(conn, table, col):
                    batch_op.drop_column(col)
