"""one_active_invoice_per_po

Revision ID: 8b41d0e6a2f3
Revises: 3f9a1c2d7e10
Create Date: 2026-10-18 14:03:27.906114+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '8b41d0e6a2f3'
down_revision: Union[str, None] = '3f9a1c2d7e10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_index(
        'uq_invoices_active_po', 'invoices', ['po_number'],
        unique=True,
        postgresql_where=sa.text("status <> 'Draft'"),
        sqlite_where=sa.text("status <> 'Draft'"),
    )


def downgrade() -> None:
    op.drop_index('uq_invoices_active_po', table_name='invoices')
