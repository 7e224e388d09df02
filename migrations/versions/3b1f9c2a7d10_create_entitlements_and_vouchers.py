"""Create entitlements and vouchers tables

Revision ID: 3b1f9c2a7d10
Revises:
Create Date: 2026-10-19 09:12:41.508213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b1f9c2a7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

entitlement_kind = postgresql.ENUM('era', 'pass', name='entitlementkind', create_type=False)


def upgrade() -> None:
    entitlement_kind.create(op.get_bind(), checkfirst=True)

    op.create_table('entitlements',
    sa.Column('owner_id', sa.String(length=255), nullable=False),
    sa.Column('kind', entitlement_kind, nullable=False),
    sa.Column('value', sa.String(length=255), nullable=False),
    sa.Column('uses_remaining', sa.Integer(), nullable=False),
    sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('purchase_ref', sa.String(length=255), nullable=True),
    sa.Column('voucher_ref', sa.String(length=255), nullable=True),
    sa.Column('id', sa.String(length=32), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_entitlements_id'), 'entitlements', ['id'], unique=True)
    op.create_index(op.f('ix_entitlements_owner_id'), 'entitlements', ['owner_id'], unique=False)
    op.create_index(op.f('ix_entitlements_purchase_ref'), 'entitlements', ['purchase_ref'], unique=False)
    op.create_index(op.f('ix_entitlements_voucher_ref'), 'entitlements', ['voucher_ref'], unique=False)
    op.create_index('ix_entitlements_owner_kind_value', 'entitlements', ['owner_id', 'kind', 'value'], unique=False)

    op.create_table('vouchers',
    sa.Column('code', sa.String(length=255), nullable=False),
    sa.Column('kind', entitlement_kind, nullable=False),
    sa.Column('value', sa.String(length=255), nullable=False),
    sa.Column('uses', sa.Integer(), nullable=True),
    sa.Column('duration_ms', sa.BigInteger(), nullable=True),
    sa.Column('purpose', sa.String(length=64), nullable=True),
    sa.Column('issued_by', sa.String(length=255), nullable=True),
    sa.Column('addressed_to', sa.String(length=255), nullable=True),
    sa.Column('created_for', sa.String(length=255), nullable=True),
    sa.Column('signup_bonus', sa.Integer(), nullable=False),
    sa.Column('reward_for_achievement_id', sa.String(length=255), nullable=True),
    sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('redeemed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('redeemed_by', sa.String(length=255), nullable=True),
    sa.Column('id', sa.String(length=32), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('code'),
    sa.UniqueConstraint('created_for', 'reward_for_achievement_id', name='uq_vouchers_created_for_achievement')
    )
    op.create_index(op.f('ix_vouchers_id'), 'vouchers', ['id'], unique=True)
    op.create_index(op.f('ix_vouchers_addressed_to'), 'vouchers', ['addressed_to'], unique=False)
    op.create_index('ix_vouchers_issuer_addressee', 'vouchers', ['issued_by', 'addressed_to'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_vouchers_issuer_addressee', table_name='vouchers')
    op.drop_index(op.f('ix_vouchers_addressed_to'), table_name='vouchers')
    op.drop_index(op.f('ix_vouchers_id'), table_name='vouchers')
    op.drop_table('vouchers')

    op.drop_index('ix_entitlements_owner_kind_value', table_name='entitlements')
    op.drop_index(op.f('ix_entitlements_voucher_ref'), table_name='entitlements')
    op.drop_index(op.f('ix_entitlements_purchase_ref'), table_name='entitlements')
    op.drop_index(op.f('ix_entitlements_owner_id'), table_name='entitlements')
    op.drop_index(op.f('ix_entitlements_id'), table_name='entitlements')
    op.drop_table('entitlements')

    entitlement_kind.drop(op.get_bind(), checkfirst=True)
