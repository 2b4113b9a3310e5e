"""Initial schema: schools, accounts with roles, children and their links

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-01-06

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Schools (tenants)
    op.create_table(
        'schools',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False, server_default=''),
        sa.Column('address', sa.String(500), nullable=False, server_default=''),
        sa.Column('commune', sa.String(100), nullable=False, server_default=''),
        sa.Column('school_year', sa.String(20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_schools_name', 'schools', ['name'])
    op.create_index('ix_schools_code', 'schools', ['code'], unique=True)
    op.create_index('ix_schools_email', 'schools', ['email'], unique=True)
    op.create_index('ix_schools_is_active', 'schools', ['is_active'])
    op.create_index('ix_schools_is_deleted', 'schools', ['is_deleted'])

    # Accounts, unique per (school, email)
    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('email_confirmed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('security_stamp', sa.String(64), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('sex', sa.String(10), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('lockout_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('lockout_end', sa.DateTime(), nullable=True),
        sa.Column('access_failed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('school_id', 'email', name='uq_accounts_school_email'),
    )
    op.create_index('ix_accounts_school_id', 'accounts', ['school_id'])
    op.create_index('ix_accounts_email', 'accounts', ['email'])
    op.create_index('ix_accounts_is_active', 'accounts', ['is_active'])

    op.create_table(
        'account_roles',
        sa.Column('account_id', sa.Uuid(), sa.ForeignKey('accounts.id'), primary_key=True),
        sa.Column('role', sa.String(50), primary_key=True),
    )
    op.create_index('ix_account_roles_role', 'account_roles', ['role'])

    # Children and their parent/teacher links
    op.create_table(
        'children',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=False),
        sa.Column('sex', sa.String(10), nullable=False),
        sa.Column('class_id', sa.Integer(), nullable=True),
        sa.Column('school_year', sa.String(20), nullable=False, server_default=''),
        sa.Column('status', sa.String(20), nullable=False, server_default='pre_inscrit'),
        sa.Column('enrolled_at', sa.DateTime(), nullable=True),
        sa.Column('uses_canteen', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_children_school_id', 'children', ['school_id'])
    op.create_index('ix_children_class_id', 'children', ['class_id'])
    op.create_index('ix_children_status', 'children', ['status'])
    op.create_index('ix_children_is_deleted', 'children', ['is_deleted'])

    for table, account_column in (('parent_children', 'parent_id'), ('teacher_children', 'teacher_id')):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id'), nullable=False),
            sa.Column(account_column, sa.Uuid(), sa.ForeignKey('accounts.id'), nullable=False),
            sa.Column('child_id', sa.Integer(), sa.ForeignKey('children.id'), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
            sa.UniqueConstraint(account_column, 'child_id', name=f'uq_{table}_{account_column.split("_")[0]}_child'),
        )
        op.create_index(f'ix_{table}_school_id', table, ['school_id'])
        op.create_index(f'ix_{table}_{account_column}', table, [account_column])
        op.create_index(f'ix_{table}_child_id', table, ['child_id'])


def downgrade():
    for table in ('teacher_children', 'parent_children', 'children', 'account_roles', 'accounts', 'schools'):
        op.drop_table(table)
