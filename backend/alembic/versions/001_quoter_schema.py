"""quoter_schema

Revision ID: 001_quoter_schema
Revises:
Create Date: 2026-09-14

Creates the base tables:
- catalog_items
- quotations (lines frozen in items_json)
- material_actuals, labor_actuals, ant_expenses, transport_actuals

The allocation scope columns arrive in 002. All DDL checks for existing
tables first so the migration is idempotent, safe to run even when
Base.metadata.create_all() already created the tables.
"""
import logging
from alembic import op
import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = '001_quoter_schema'
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.001")


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


def _id():
    return sa.Column('id', UUID(as_uuid=False), primary_key=True)


def _quotation_fk():
    return sa.Column(
        'quotation_id', UUID(as_uuid=False),
        sa.ForeignKey('quotations.id', ondelete='CASCADE'), nullable=False, index=True,
    )


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    conn = op.get_bind()

    # ── catalog_items ─────────────────────────────────────────────────────────
    if not _table_exists(conn, 'catalog_items'):
        op.create_table(
            'catalog_items',
            _id(),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('description', sa.Text, nullable=True),
            sa.Column('image_ref', sa.Text, nullable=True),
            sa.Column('base_price', sa.Numeric(14, 2), nullable=False),
            sa.Column('category', sa.String(20), nullable=False, server_default='other', index=True),
            sa.Column('options_json', JSONB, nullable=True),
            sa.Column('custom_options_json', JSONB, nullable=True),
            sa.Column('default_materials_json', JSONB, nullable=True),
            sa.Column('dimensions_json', JSONB, nullable=True),
            sa.Column('labor_hours', sa.Numeric(8, 2), server_default='0'),
            sa.Column('margin_pct', sa.Numeric(6, 2), nullable=True),
            sa.Column('fabrication_days', sa.Integer, nullable=True),
            sa.Column('is_active', sa.Boolean, server_default=sa.true()),
            _created_at(),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        logger.info("Created table: catalog_items")
    else:
        logger.info("Table catalog_items already exists; skipping create")

    # ── quotations ────────────────────────────────────────────────────────────
    if not _table_exists(conn, 'quotations'):
        op.create_table(
            'quotations',
            _id(),
            sa.Column('number', sa.String(50), nullable=True, unique=True),
            sa.Column('client_name', sa.String(255), nullable=True),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft', index=True),
            sa.Column('discount_pct', sa.Numeric(6, 2), server_default='0'),
            sa.Column('vat_rate_pct', sa.Numeric(6, 2), server_default='19'),
            sa.Column('items_json', JSONB, nullable=True),
            sa.Column('subtotal', sa.Numeric(16, 2), server_default='0'),
            sa.Column('vat', sa.Numeric(16, 2), server_default='0'),
            sa.Column('total', sa.Numeric(16, 2), server_default='0'),
            _created_at(),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        logger.info("Created table: quotations")
    else:
        logger.info("Table quotations already exists; skipping create")

    # ── real costs ────────────────────────────────────────────────────────────
    if not _table_exists(conn, 'material_actuals'):
        op.create_table(
            'material_actuals',
            _id(),
            _quotation_fk(),
            sa.Column('line_id', sa.String(64), nullable=True),
            sa.Column('material_id', sa.String(64), nullable=True),
            sa.Column('material_name', sa.String(255), nullable=False),
            sa.Column('unit', sa.String(30), server_default='unit'),
            sa.Column('budgeted_quantity', sa.Numeric(12, 3), server_default='0'),
            sa.Column('budgeted_unit_price', sa.Numeric(14, 2), server_default='0'),
            sa.Column('real_quantity', sa.Numeric(12, 3), nullable=False),
            sa.Column('real_unit_price', sa.Numeric(14, 2), nullable=False),
            sa.Column('purchased_on', sa.Date, nullable=False),
            sa.Column('supplier', sa.String(255), nullable=True),
            sa.Column('invoice_number', sa.String(100), nullable=True),
            sa.Column('document_ref', sa.Text, nullable=True),
            sa.Column('notes', sa.Text, nullable=True),
            _created_at(),
        )
        logger.info("Created table: material_actuals")

    if not _table_exists(conn, 'labor_actuals'):
        op.create_table(
            'labor_actuals',
            _id(),
            _quotation_fk(),
            sa.Column('worker_id', sa.String(64), nullable=True),
            sa.Column('hours', sa.Numeric(8, 2), server_default='0'),
            sa.Column('hourly_rate', sa.Numeric(12, 2), server_default='0'),
            sa.Column('calculation', sa.String(10), server_default='hours'),
            sa.Column('manual_amount', sa.Numeric(14, 2), nullable=True),
            sa.Column('total_paid', sa.Numeric(14, 2), server_default='0'),
            sa.Column('worked_on', sa.Date, nullable=False),
            sa.Column('payment_method', sa.String(20), nullable=True),
            sa.Column('document_ref', sa.Text, nullable=True),
            sa.Column('notes', sa.Text, nullable=True),
            _created_at(),
        )
        logger.info("Created table: labor_actuals")

    if not _table_exists(conn, 'ant_expenses'):
        op.create_table(
            'ant_expenses',
            _id(),
            _quotation_fk(),
            sa.Column('description', sa.Text, nullable=False),
            sa.Column('amount', sa.Numeric(14, 2), nullable=False),
            sa.Column('spent_on', sa.Date, nullable=False),
            sa.Column('document_ref', sa.Text, nullable=True),
            sa.Column('evidence_ref', sa.Text, nullable=True),
            _created_at(),
        )
        logger.info("Created table: ant_expenses")

    if not _table_exists(conn, 'transport_actuals'):
        op.create_table(
            'transport_actuals',
            _id(),
            _quotation_fk(),
            sa.Column('description', sa.Text, nullable=False),
            sa.Column('cost', sa.Numeric(14, 2), nullable=False),
            sa.Column('shipped_on', sa.Date, nullable=False),
            sa.Column('document_ref', sa.Text, nullable=True),
            _created_at(),
        )
        op.create_index(
            'ix_transport_actuals_quotation_date', 'transport_actuals',
            ['quotation_id', 'shipped_on'],
        )
        logger.info("Created table: transport_actuals")


def downgrade() -> None:
    conn = op.get_bind()

    for table in ['transport_actuals', 'ant_expenses', 'labor_actuals',
                  'material_actuals', 'quotations', 'catalog_items']:
        if _table_exists(conn, table):
            op.drop_table(table)
