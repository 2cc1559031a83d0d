"""Create referral commission schema.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create affiliates, products, commissions, balance movements, orders."""

    op.create_table(
        'affiliates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('sponsor_code', sa.String(20), nullable=True, comment='Sponsor affiliate code, not enforced by FK'),
        sa.Column('balance_pending', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('balance_available', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_earnings', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('direct_referral_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('downline_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('balance_pending >= 0', name='check_affiliate_balance_pending_non_negative'),
        sa.CheckConstraint('balance_available >= 0', name='check_affiliate_balance_available_non_negative'),
        sa.CheckConstraint('total_earnings >= 0', name='check_affiliate_total_earnings_non_negative'),
        sa.CheckConstraint('direct_referral_count >= 0', name='check_affiliate_direct_referrals_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_affiliates_code', 'affiliates', ['code'], unique=True)
    op.create_index('ix_affiliates_sponsor_code', 'affiliates', ['sponsor_code'])
    op.create_index('ix_affiliates_created_at', 'affiliates', ['created_at'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'product_level_commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('rate', sa.DECIMAL(10, 4), nullable=False, comment='Percentage of order total'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('product_id', 'level', name='uq_product_level_commission'),
        sa.CheckConstraint('level >= 1', name='check_level_commission_level_positive'),
        sa.CheckConstraint('rate > 0 AND rate <= 100', name='check_level_commission_rate_range'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_product_level_commissions_product_id', 'product_level_commissions', ['product_id'])

    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.String(64), nullable=False),
        sa.Column('buyer_code', sa.String(20), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('beneficiary_code', sa.String(20), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('rate', sa.DECIMAL(10, 4), nullable=False, comment='Rate snapshot at calculation time'),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('order_id', 'beneficiary_code', 'level', name='uq_commission_order_beneficiary_level'),
        sa.CheckConstraint('level >= 1', name='check_commission_level_positive'),
        sa.CheckConstraint('amount >= 0', name='check_commission_amount_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_commissions_order_id', 'commissions', ['order_id'])
    op.create_index('idx_commission_beneficiary_status', 'commissions', ['beneficiary_code', 'status'])

    op.create_table(
        'balance_movements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('affiliate_code', sa.String(20), nullable=False),
        sa.Column('commission_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(32), nullable=False),
        sa.Column('field', sa.String(32), nullable=False),
        sa.Column('target_field', sa.String(32), nullable=True),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('balance_before', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('balance_after', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('commission_id', 'movement_type', name='uq_balance_movement_commission_type'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_balance_movements_affiliate_code', 'balance_movements', ['affiliate_code'])
    op.create_index('ix_balance_movements_commission_id', 'balance_movements', ['commission_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.String(64), nullable=False),
        sa.Column('buyer_code', sa.String(20), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('commissions_generated', sa.JSON(), nullable=False, comment='Cached summary rebuilt from the ledger'),
        sa.Column('commissions_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_order_id', 'orders', ['order_id'], unique=True)
    op.create_index('ix_orders_buyer_code', 'orders', ['buyer_code'])


def downgrade() -> None:
    """Drop referral commission schema."""

    op.drop_index('ix_orders_buyer_code', table_name='orders')
    op.drop_index('ix_orders_order_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_balance_movements_commission_id', table_name='balance_movements')
    op.drop_index('ix_balance_movements_affiliate_code', table_name='balance_movements')
    op.drop_table('balance_movements')

    op.drop_index('idx_commission_beneficiary_status', table_name='commissions')
    op.drop_index('ix_commissions_order_id', table_name='commissions')
    op.drop_table('commissions')

    op.drop_index('ix_product_level_commissions_product_id', table_name='product_level_commissions')
    op.drop_table('product_level_commissions')
    op.drop_table('products')

    op.drop_index('ix_affiliates_created_at', table_name='affiliates')
    op.drop_index('ix_affiliates_sponsor_code', table_name='affiliates')
    op.drop_index('ix_affiliates_code', table_name='affiliates')
    op.drop_table('affiliates')
