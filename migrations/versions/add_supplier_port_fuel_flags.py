"""Add fuel capability and custom delivery columns to supplier_ports

Revision ID: add_supplier_port_fuel_flags
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'add_supplier_port_fuel_flags'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Add has_vlsfo/has_lsmgo and the custom JSON lists to supplier_ports"""

    op.add_column('supplier_ports', sa.Column('has_vlsfo', sa.Boolean(), nullable=False, server_default=sa.false()))
    op.add_column('supplier_ports', sa.Column('has_lsmgo', sa.Boolean(), nullable=False, server_default=sa.false()))
    op.add_column('supplier_ports', sa.Column('custom_fuel_types', sa.JSON(), nullable=False, server_default='[]'))
    op.add_column('supplier_ports', sa.Column('custom_delivery_methods', sa.JSON(), nullable=False, server_default='[]'))

    # Supplier-level defaults for new ports
    op.add_column('suppliers', sa.Column('default_has_barge', sa.Boolean(), nullable=False, server_default=sa.false()))
    op.add_column('suppliers', sa.Column('default_has_truck', sa.Boolean(), nullable=False, server_default=sa.false()))
    op.add_column('suppliers', sa.Column('default_has_expipe', sa.Boolean(), nullable=False, server_default=sa.false()))

    print("✅ Added fuel capability flags to supplier_ports")


def downgrade():
    """Remove the supplier port fuel columns"""

    op.drop_column('suppliers', 'default_has_expipe')
    op.drop_column('suppliers', 'default_has_truck')
    op.drop_column('suppliers', 'default_has_barge')

    op.drop_column('supplier_ports', 'custom_delivery_methods')
    op.drop_column('supplier_ports', 'custom_fuel_types')
    op.drop_column('supplier_ports', 'has_lsmgo')
    op.drop_column('supplier_ports', 'has_vlsfo')

    print("✅ Removed fuel capability flags from supplier_ports")
