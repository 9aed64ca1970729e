"""create user and vocabulary tables

Revision ID: a1c4e7b90d12
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7b90d12'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('display_name', sa.String(length=64), nullable=True),
            sa.Column('avatar', sa.String(length=16), nullable=False, server_default='🙂'),
            sa.Column('role', sa.String(length=16), nullable=False, server_default='student'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'vocabulary' not in existing_tables:
        op.create_table(
            'vocabulary',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('word', sa.String(length=64), nullable=False),
            sa.Column('reading', sa.String(length=64), nullable=True),
            sa.Column('meaning', sa.String(length=128), nullable=False),
            sa.Column('jlpt_level', sa.String(length=2), nullable=False, server_default='N5'),
            sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_vocabulary_jlpt_level', 'vocabulary', ['jlpt_level'], unique=False)


def downgrade():
    op.drop_index('ix_vocabulary_jlpt_level', table_name='vocabulary')
    op.drop_table('vocabulary')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
