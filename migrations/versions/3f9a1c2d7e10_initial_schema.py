"""initial_schema

Revision ID: 3f9a1c2d7e10
Revises:
Create Date: 2026-10-18 09:12:44.518211+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. purchase_orders
    op.create_table('purchase_orders',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('po_number', sa.String(length=50), nullable=False),
    sa.Column('supplier_name', sa.String(length=255), nullable=False),
    sa.Column('supplier_id', sa.String(length=50), nullable=True),
    sa.Column('order_date', sa.Date(), nullable=True),
    sa.Column('expected_delivery_date', sa.Date(), nullable=True),
    sa.Column('shipping_address', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('auto_approve', sa.Boolean(), nullable=False),
    sa.Column('requestor_name', sa.String(length=255), nullable=True),
    sa.Column('approval_date', sa.Date(), nullable=True),
    sa.Column('subtotal', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('tax', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('shipping', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('total', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('draft_count', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint("status IN ('Open','Closed')", name='chk_po_status'),
    sa.CheckConstraint('draft_count >= 0', name='chk_po_draft_count'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('po_number')
    )
    op.create_index('idx_po_status', 'purchase_orders', ['status'], unique=False)

    # 2. po_line_items (FK purchase_orders)
    op.create_table('po_line_items',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('po_id', sa.Uuid(), nullable=False),
    sa.Column('line_number', sa.Integer(), nullable=False),
    sa.Column('item_id', sa.String(length=50), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('unit_price', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('total_price', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.CheckConstraint('quantity > 0', name='chk_po_line_qty'),
    sa.CheckConstraint('unit_price >= 0', name='chk_po_line_price'),
    sa.ForeignKeyConstraint(['po_id'], ['purchase_orders.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('po_id', 'line_number', name='uq_po_line_item')
    )
    op.create_index('idx_po_items_po', 'po_line_items', ['po_id'], unique=False)

    # 3. invoices (po_number is a value reference, no FK across stores)
    op.create_table('invoices',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('invoice_number', sa.String(length=50), nullable=False),
    sa.Column('po_number', sa.String(length=50), nullable=False),
    sa.Column('supplier_name', sa.String(length=255), nullable=True),
    sa.Column('supplier_id', sa.String(length=50), nullable=True),
    sa.Column('invoice_date', sa.Date(), nullable=False),
    sa.Column('due_date', sa.Date(), nullable=True),
    sa.Column('approver', sa.String(length=255), nullable=True),
    sa.Column('requested_approver', sa.String(length=255), nullable=True),
    sa.Column('auto_approve', sa.Boolean(), nullable=False),
    sa.Column('subtotal', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('tax', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('shipping', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('total', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('status', sa.String(length=30), nullable=False),
    sa.Column('version', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint("status IN ('Draft','Pending Approval','Approved','Paid')", name='chk_invoice_status'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('invoice_number', name='uq_invoice_number')
    )
    op.create_index('idx_invoices_po', 'invoices', ['po_number'], unique=False)
    op.create_index('idx_invoices_status', 'invoices', ['status'], unique=False)

    # 4. invoice_line_items (FK invoices)
    op.create_table('invoice_line_items',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('invoice_id', sa.Uuid(), nullable=False),
    sa.Column('line_number', sa.Integer(), nullable=False),
    sa.Column('item_id', sa.String(length=50), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('unit_price', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('total_price', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.CheckConstraint('quantity > 0', name='chk_inv_line_qty'),
    sa.CheckConstraint('unit_price >= 0', name='chk_inv_line_price'),
    sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('invoice_id', 'line_number', name='uq_invoice_line_item')
    )
    op.create_index('idx_invoice_items_invoice', 'invoice_line_items', ['invoice_id'], unique=False)

    # 5. goods_received
    op.create_table('goods_received',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('po_number', sa.String(length=50), nullable=False),
    sa.Column('item_id', sa.String(length=50), nullable=False),
    sa.Column('serial_number', sa.String(length=100), nullable=True),
    sa.Column('asset_tag_number', sa.String(length=100), nullable=True),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('received_date', sa.Date(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint("status IN ('Received','Not Received')", name='chk_gr_status'),
    sa.CheckConstraint("(status = 'Received') = (received_date IS NOT NULL)", name='chk_gr_received_date'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_gr_po_item', 'goods_received', ['po_number', 'item_id'], unique=False)

    # 6. safe_limits
    op.create_table('safe_limits',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.String(length=50), nullable=False),
    sa.Column('user_name', sa.String(length=255), nullable=False),
    sa.Column('approval_limit', sa.Numeric(precision=14, scale=2), nullable=False),
    sa.Column('currency', sa.String(length=3), nullable=False),
    sa.Column('role', sa.String(length=100), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint('approval_limit >= 0', name='chk_safe_limit_positive'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id')
    )
    op.create_index('idx_safe_limits_user_name', 'safe_limits', ['user_name'], unique=False)

    # 7. approval_history (append-only)
    op.create_table('approval_history',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('invoice_number', sa.String(length=50), nullable=False),
    sa.Column('approver_name', sa.String(length=255), nullable=False),
    sa.Column('action', sa.String(length=50), nullable=False),
    sa.Column('comments', sa.Text(), nullable=True),
    sa.Column('timestamp', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_approval_history_invoice', 'approval_history', ['invoice_number'], unique=False)
    op.create_index(
        'uq_approval_history_approved', 'approval_history', ['invoice_number'],
        unique=True,
        postgresql_where=sa.text("action = 'Approved'"),
        sqlite_where=sa.text("action = 'Approved'"),
    )


def downgrade() -> None:
    op.drop_index('uq_approval_history_approved', table_name='approval_history')
    op.drop_index('idx_approval_history_invoice', table_name='approval_history')
    op.drop_table('approval_history')
    op.drop_index('idx_safe_limits_user_name', table_name='safe_limits')
    op.drop_table('safe_limits')
    op.drop_index('idx_gr_po_item', table_name='goods_received')
    op.drop_table('goods_received')
    op.drop_index('idx_invoice_items_invoice', table_name='invoice_line_items')
    op.drop_table('invoice_line_items')
    op.drop_index('idx_invoices_status', table_name='invoices')
    op.drop_index('idx_invoices_po', table_name='invoices')
    op.drop_table('invoices')
    op.drop_index('idx_po_items_po', table_name='po_line_items')
    op.drop_table('po_line_items')
    op.drop_index('idx_po_status', table_name='purchase_orders')
    op.drop_table('purchase_orders')
