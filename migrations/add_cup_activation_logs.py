"""Add cup activation audit log

One row per cup activation check with the fixture snapshot, the condition
and status results, the decision and its duration.
"""

import sqlalchemy as sa
from alembic import op


def upgrade():
    op.create_table(
        "cup_activation_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=True),
        sa.Column("fixture_data", sa.JSON(), nullable=True),
        sa.Column("condition_result", sa.JSON(), nullable=True),
        sa.Column("status_result", sa.JSON(), nullable=True),
        sa.Column("activation_result", sa.JSON(), nullable=True),
        sa.Column("should_activate", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("action_taken", sa.String(length=255), nullable=False),
        sa.Column("reasoning", sa.Text(), nullable=True),
        sa.Column("errors", sa.JSON(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cup_activation_logs_session_id", "cup_activation_logs", ["session_id"])
    op.create_index(
        "idx_cup_log_season_created", "cup_activation_logs", ["season_id", "created_at"]
    )


def downgrade():
    op.drop_index("idx_cup_log_season_created", table_name="cup_activation_logs")
    op.drop_index("ix_cup_activation_logs_session_id", table_name="cup_activation_logs")
    op.drop_table("cup_activation_logs")
