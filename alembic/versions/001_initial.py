# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Regime classification per iteration
    op.create_table('regime_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('regime', sa.String(length=50), nullable=False),
        sa.Column('confidence', sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('vix_level', sa.Numeric(precision=6, scale=2), nullable=True),
        sa.Column('gex_level', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_regime_history_timestamp', 'regime_history', ['timestamp'])

    # Actionable signals
    op.create_table('trading_signals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('signal_type', sa.String(length=20), nullable=False),
        sa.Column('confidence', sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column('regime', sa.String(length=50), nullable=False),
        sa.Column('suggested_tp', sa.Integer(), nullable=False),
        sa.Column('suggested_sl', sa.Integer(), nullable=False),
        sa.Column('entry_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('features', sa.JSON(), nullable=True),
        sa.Column('reasoning', sa.JSON(), nullable=True),
        sa.Column('executed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_trading_signals_timestamp', 'trading_signals', ['timestamp'])
    op.create_index('ix_trading_signals_signal_type', 'trading_signals', ['signal_type'])

    # Sampled feature telemetry
    op.create_table('feature_importance',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('feature_name', sa.String(length=50), nullable=False),
        sa.Column('importance', sa.Numeric(precision=10, scale=6), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=True),
        sa.Column('model_type', sa.String(length=20), nullable=False, server_default='ensemble'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_feature_importance_timestamp', 'feature_importance', ['timestamp'])


def downgrade():
    op.drop_index('ix_feature_importance_timestamp', table_name='feature_importance')
    op.drop_table('feature_importance')
    op.drop_index('ix_trading_signals_signal_type', table_name='trading_signals')
    op.drop_index('ix_trading_signals_timestamp', table_name='trading_signals')
    op.drop_table('trading_signals')
    op.drop_index('ix_regime_history_timestamp', table_name='regime_history')
    op.drop_table('regime_history')
