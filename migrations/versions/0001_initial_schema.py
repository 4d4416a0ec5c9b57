"""Initial schema: users, categories, incomes, allocation rules

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-10-20 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=120), nullable=False, unique=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('telegram_id', sa.BigInteger(), nullable=True, unique=True),
        sa.Column('telegram_username', sa.String(length=100), nullable=True),
        sa.Column('telegram_first_name', sa.String(length=100), nullable=True),
        sa.Column('telegram_last_name', sa.String(length=100), nullable=True),
        sa.Column('telegram_photo_url', sa.String(length=500), nullable=True),
        sa.Column('telegram_link_code', sa.String(length=16), nullable=True, unique=True),
        sa.Column('telegram_linked_at', sa.DateTime(), nullable=True),
        sa.Column('auth_type', sa.String(length=20), nullable=False, server_default='email'),
        sa.Column('theme', sa.String(length=20), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=True),
        sa.Column('onboarding_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tutorial_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )

    for table, icon, color in (
        ('income_categories', 'wallet', '#10B981'),
        ('expense_categories', 'folder', '#6B7280'),
    ):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('icon', sa.String(length=50), nullable=False, server_default=icon),
            sa.Column('color', sa.String(length=7), nullable=False, server_default=color),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )

    op.create_table(
        'incomes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.Integer(),
                  sa.ForeignKey('income_categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='RUB'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_incomes_amount_non_negative'),
    )

    op.create_table(
        'expense_category_allocations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expense_category_id', sa.Integer(),
                  sa.ForeignKey('expense_categories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('income_category_id', sa.Integer(),
                  sa.ForeignKey('income_categories.id', ondelete='CASCADE'), nullable=False),
        sa.Column('allocation_type', sa.String(length=20), nullable=False, server_default='percentage'),
        sa.Column('allocation_value', sa.Numeric(14, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("allocation_type IN ('percentage', 'fixed')", name='ck_allocations_type'),
        sa.CheckConstraint('allocation_value >= 0', name='ck_allocations_value_non_negative'),
    )
    op.create_index('ix_expense_category_allocations_expense_category_id',
                    'expense_category_allocations', ['expense_category_id'])


def downgrade():
    op.drop_index('ix_expense_category_allocations_expense_category_id',
                  table_name='expense_category_allocations')
    op.drop_table('expense_category_allocations')
    op.drop_table('incomes')
    op.drop_table('expense_categories')
    op.drop_table('income_categories')
    op.drop_table('users')
