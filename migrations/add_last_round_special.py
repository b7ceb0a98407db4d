"""Add Last Round Special (cup) support

- Activation flag and timestamp on seasons
- Per-round cup points table
- competition_type on season_winners so league and cup winners coexist
"""

import sqlalchemy as sa
from alembic import op


def upgrade():
    op.add_column(
        "seasons",
        sa.Column(
            "last_round_special_activated",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
    )
    op.add_column(
        "seasons",
        sa.Column("last_round_special_activated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "user_last_round_special_points",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("betting_round_id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["betting_round_id"], ["betting_rounds.id"]),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id",
            "betting_round_id",
            "season_id",
            name="unique_user_round_season_cup_points",
        ),
    )
    op.create_index(
        "idx_cup_points_user_season", "user_last_round_special_points", ["user_id", "season_id"]
    )
    op.create_index("idx_cup_points_season", "user_last_round_special_points", ["season_id"])
    op.create_index(
        "idx_cup_points_round", "user_last_round_special_points", ["betting_round_id"]
    )

    # Existing winners are league winners
    with op.batch_alter_table("season_winners") as batch_op:
        batch_op.add_column(
            sa.Column(
                "competition_type",
                sa.String(length=50),
                nullable=False,
                server_default="league",
            )
        )
        batch_op.drop_constraint("unique_season_user_winner", type_="unique")
        batch_op.create_unique_constraint(
            "unique_season_user_competition_winner",
            ["season_id", "user_id", "competition_type"],
        )
        batch_op.create_check_constraint(
            "season_winners_competition_type_check",
            "competition_type IN ('league', 'last_round_special')",
        )

    op.create_index(
        "idx_winner_season_competition", "season_winners", ["season_id", "competition_type"]
    )
    op.create_index("idx_winner_competition_type", "season_winners", ["competition_type"])


def downgrade():
    op.drop_index("idx_winner_competition_type", table_name="season_winners")
    op.drop_index("idx_winner_season_competition", table_name="season_winners")

    # Cup winners cannot be represented without competition_type
    op.execute("DELETE FROM season_winners WHERE competition_type = 'last_round_special'")
    with op.batch_alter_table("season_winners") as batch_op:
        batch_op.drop_constraint("season_winners_competition_type_check", type_="check")
        batch_op.drop_constraint("unique_season_user_competition_winner", type_="unique")
        batch_op.create_unique_constraint(
            "unique_season_user_winner", ["season_id", "user_id"]
        )
        batch_op.drop_column("competition_type")

    op.drop_index("idx_cup_points_round", table_name="user_last_round_special_points")
    op.drop_index("idx_cup_points_season", table_name="user_last_round_special_points")
    op.drop_index("idx_cup_points_user_season", table_name="user_last_round_special_points")
    op.drop_table("user_last_round_special_points")

    with op.batch_alter_table("seasons") as batch_op:
        batch_op.drop_column("last_round_special_activated_at")
        batch_op.drop_column("last_round_special_activated")
