"""create scores and score_actions, seed teams

Revision ID: 4c2a9e7d1b01
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from datetime import datetime, timezone

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2a9e7d1b01'
down_revision = None
branch_labels = None
depends_on = None

SEED_TEAMS = ('blue', 'green', 'yellow', 'red')


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'scores' not in existing_tables:
        scores = op.create_table(
            'scores',
            sa.Column('team', sa.String(length=32), primary_key=True),
            sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.CheckConstraint('score >= 0', name='ck_scores_score_non_negative'),
        )
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        op.bulk_insert(scores, [{'team': t, 'score': 0, 'updated_at': now} for t in SEED_TEAMS])

    if 'score_actions' not in existing_tables:
        op.create_table(
            'score_actions',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('team', sa.String(length=32), sa.ForeignKey('scores.team'), nullable=False),
            sa.Column('delta', sa.Integer(), nullable=False),
            sa.Column('prev_score', sa.Integer(), nullable=False),
            sa.Column('new_score', sa.Integer(), nullable=False),
            sa.Column('client_id', sa.String(length=128), nullable=False),
            sa.Column('action_type', sa.String(length=16), nullable=False),
            sa.Column('reverts_action_id', sa.String(length=36), sa.ForeignKey('score_actions.id'), nullable=True),
            sa.Column('undone', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('undone_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.CheckConstraint(
                "action_type IN ('increment', 'decrement', 'reset', 'reset_all', 'undo')",
                name='ck_score_actions_action_type',
            ),
        )
        op.create_index('idx_score_actions_client_created', 'score_actions', ['client_id', 'created_at'])
        op.create_index('ix_score_actions_created_at', 'score_actions', ['created_at'])
        if bind.dialect.name == 'postgresql':
            op.create_index(
                'idx_score_actions_client_undo',
                'score_actions',
                ['client_id', sa.text('created_at DESC')],
                postgresql_where=sa.text("undone = FALSE AND action_type != 'undo'"),
            )

    if bind.dialect.name == 'postgresql':
        # Read-only for everyone but the application role that owns the tables
        op.execute('ALTER TABLE scores ENABLE ROW LEVEL SECURITY')
        op.execute('ALTER TABLE score_actions ENABLE ROW LEVEL SECURITY')
        op.execute('CREATE POLICY scores_public_read ON scores FOR SELECT USING (true)')
        op.execute('CREATE POLICY score_actions_public_read ON score_actions FOR SELECT USING (true)')


def downgrade():
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        op.execute('DROP POLICY IF EXISTS score_actions_public_read ON score_actions')
        op.execute('DROP POLICY IF EXISTS scores_public_read ON scores')
        op.drop_index('idx_score_actions_client_undo', table_name='score_actions')
    op.drop_index('ix_score_actions_created_at', table_name='score_actions')
    op.drop_index('idx_score_actions_client_created', table_name='score_actions')
    op.drop_table('score_actions')
    op.drop_table('scores')
