"""Initial fuel ledger schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. Reference resources: stations, clients, vehicles, barracks, items
2. price_windows (effective price source for stations)
3. balance_accounts + ledger_entries (one balance per owner key, append-only history)
4. sales and stock_transfers
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. REFERENCE RESOURCES
    # ==========================================================================
    op.create_table('stations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('current_fuel_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('price_recalculated_at', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stations_name', 'stations', ['name'], unique=False)

    op.create_table('clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_clients_name', 'clients', ['name'], unique=False)

    op.create_table('vehicles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vehicles_client_id', 'vehicles', ['client_id'], unique=False)

    op.create_table('barracks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table('items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('unit', sa.String(length=16), nullable=False, server_default='L'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. PRICE WINDOWS
    # ==========================================================================
    op.create_table('price_windows',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_price_windows_station_id', 'price_windows', ['station_id'], unique=False)
    op.create_index('ix_price_windows_station_start', 'price_windows', ['station_id', 'start_date'], unique=False)

    # ==========================================================================
    # 3. BALANCES
    # ==========================================================================
    op.create_table('balance_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('domain', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('domain', 'owner_id', 'item_id', name='uq_balance_accounts_owner_key'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_balance_accounts_domain', 'balance_accounts', ['domain'], unique=False)
    op.create_index('ix_balance_accounts_owner_id', 'balance_accounts', ['owner_id'], unique=False)

    # ==========================================================================
    # 4. SALES AND TRANSFERS
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('station_id', sa.Integer(), nullable=False),
        sa.Column('vehicle_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('sale_date', sa.DateTime(), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['station_id'], ['stations.id'], ),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_vehicle_id', 'sales', ['vehicle_id'], unique=False)
    op.create_index('ix_sales_sale_date', 'sales', ['sale_date'], unique=False)
    op.create_index('ix_sales_station_date', 'sales', ['station_id', 'sale_date'], unique=False)
    op.create_index('ix_sales_client_date', 'sales', ['client_id', 'sale_date'], unique=False)

    op.create_table('stock_transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('from_barracks_id', sa.Integer(), nullable=False),
        sa.Column('to_barracks_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('requested_by', sa.Integer(), nullable=False),
        sa.Column('request_date', sa.DateTime(), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approval_date', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['from_barracks_id'], ['barracks.id'], ),
        sa.ForeignKeyConstraint(['to_barracks_id'], ['barracks.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_transfers', schema=None) as batch_op:
        batch_op.create_index('ix_stock_transfers_from_barracks_id', ['from_barracks_id'], unique=False)
        batch_op.create_index('ix_stock_transfers_to_barracks_id', ['to_barracks_id'], unique=False)
        batch_op.create_index('ix_stock_transfers_item_id', ['item_id'], unique=False)
        batch_op.create_index('ix_stock_transfers_status', ['status'], unique=False)
        batch_op.create_index('ix_stock_transfers_status_created', ['status', 'created_at'], unique=False)

    # ==========================================================================
    # 5. LEDGER ENTRIES (append-only)
    # ==========================================================================
    op.create_table('ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('domain', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount_in', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('amount_out', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference', sa.String(length=255), nullable=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('transfer_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['balance_accounts.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['transfer_id'], ['stock_transfers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('ledger_entries', schema=None) as batch_op:
        batch_op.create_index('ix_ledger_entries_occurred_at', ['occurred_at'], unique=False)
        batch_op.create_index('ix_ledger_entries_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_ledger_entries_transfer_id', ['transfer_id'], unique=False)
        batch_op.create_index('ix_ledger_entries_account_occurred', ['account_id', 'occurred_at', 'id'], unique=False)
        batch_op.create_index('ix_ledger_entries_domain_owner', ['domain', 'owner_id', 'item_id'], unique=False)


def downgrade():
    op.drop_table('ledger_entries')
    op.drop_table('stock_transfers')
    op.drop_table('sales')
    op.drop_table('balance_accounts')
    op.drop_table('price_windows')
    op.drop_table('items')
    op.drop_table('barracks')
    op.drop_table('vehicles')
    op.drop_table('clients')
    op.drop_table('stations')
