"""Add workspace members and contact groups

Revision ID: add_workspace_members_and_groups
Revises: add_supplier_port_fuel_flags
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'add_workspace_members_and_groups'
down_revision = 'add_supplier_port_fuel_flags'
branch_labels = None
depends_on = None


def upgrade():
    """Create workspace_members, contact_groups and contact_group_members"""

    op.create_table(
        'workspace_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('added_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='member'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('workspace_id', 'user_id', name='uq_workspace_member'),
    )
    op.create_index('ix_workspace_members_workspace_id', 'workspace_members', ['workspace_id'])
    op.create_index('ix_workspace_members_user_id', 'workspace_members', ['user_id'])

    op.create_table(
        'contact_groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workspace_id', sa.Integer(), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(7), nullable=False, server_default='#3B82F6'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_contact_groups_workspace_id', 'contact_groups', ['workspace_id'])
    op.create_index('ix_contact_groups_user_id', 'contact_groups', ['user_id'])

    op.create_table(
        'contact_group_members',
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('contact_groups.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('contact_id', sa.Integer(), sa.ForeignKey('contacts.id', ondelete='CASCADE'), primary_key=True),
    )

    print("✅ Added workspace members and contact groups")


def downgrade():
    """Drop the sharing and grouping tables"""

    op.drop_table('contact_group_members')
    op.drop_index('ix_contact_groups_user_id', table_name='contact_groups')
    op.drop_index('ix_contact_groups_workspace_id', table_name='contact_groups')
    op.drop_table('contact_groups')
    op.drop_index('ix_workspace_members_user_id', table_name='workspace_members')
    op.drop_index('ix_workspace_members_workspace_id', table_name='workspace_members')
    op.drop_table('workspace_members')

    print("✅ Removed workspace members and contact groups")
