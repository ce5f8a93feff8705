"""initial_schema

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-16 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

REGISTRANT_TABLES = ('visitors', 'exhibitors', 'partners', 'speakers', 'awardees')


def _create_registrant_table(name: str) -> None:
    op.create_table(name,
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('ticket_code', sa.String(length=64), nullable=True),
        sa.Column('ticket_code_num', sa.BigInteger(), nullable=True),
        sa.Column('ticket_category', sa.String(length=100), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('mobile', sa.String(length=50), nullable=True),
        sa.Column('added_by_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tx_id', sa.String(length=255), nullable=True),
        sa.Column('upgraded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('approved_by', sa.String(length=255), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.String(length=255), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('email_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('email_failed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_failed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('raw_form', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    # Nullable unique indexes: many rows without a value, at most one per value
    op.create_index(f'uq_{name}_ticket_code', name, ['ticket_code'], unique=True)
    op.create_index(f'uq_{name}_email', name, ['email'], unique=True)
    op.create_index(f'ix_{name}_ticket_code_num', name, ['ticket_code_num'])


def upgrade() -> None:
    for name in REGISTRANT_TABLES:
        _create_registrant_table(name)

    op.create_table('tickets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ticket_code', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.String(length=36), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entity_type', 'entity_id', name='uq_tickets_entity')
    )
    op.create_index('ix_tickets_id', 'tickets', ['id'])
    op.create_index('uq_tickets_ticket_code', 'tickets', ['ticket_code'], unique=True)

    op.create_table('coupons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('discount', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('used_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_coupons_id', 'coupons', ['id'])
    op.create_index('ix_coupons_code', 'coupons', ['code'], unique=True)

    op.create_table('coupon_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=True),
        sa.Column('discount', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('actor', sa.String(length=255), nullable=True),
        sa.Column('count', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_coupon_logs_id', 'coupon_logs', ['id'])
    op.create_index('ix_coupon_logs_code', 'coupon_logs', ['code'])

    op.create_table('registration_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('page', sa.String(length=50), nullable=False),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_registration_configs_id', 'registration_configs', ['id'])
    op.create_index('ix_registration_configs_page', 'registration_configs', ['page'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_registration_configs_page', table_name='registration_configs')
    op.drop_index('ix_registration_configs_id', table_name='registration_configs')
    op.drop_table('registration_configs')

    op.drop_index('ix_coupon_logs_code', table_name='coupon_logs')
    op.drop_index('ix_coupon_logs_id', table_name='coupon_logs')
    op.drop_table('coupon_logs')

    op.drop_index('ix_coupons_code', table_name='coupons')
    op.drop_index('ix_coupons_id', table_name='coupons')
    op.drop_table('coupons')

    op.drop_index('uq_tickets_ticket_code', table_name='tickets')
    op.drop_index('ix_tickets_id', table_name='tickets')
    op.drop_table('tickets')

    for name in reversed(REGISTRANT_TABLES):
        op.drop_index(f'ix_{name}_ticket_code_num', table_name=name)
        op.drop_index(f'uq_{name}_email', table_name=name)
        op.drop_index(f'uq_{name}_ticket_code', table_name=name)
        op.drop_table(name)
