"""Create the prediction league core schema

Competitions, seasons, teams, fixtures, betting rounds with their fixture
links, profiles, bets and per-round dynamic points.
"""

import sqlalchemy as sa
from alembic import op


def upgrade():
    op.create_table(
        "competitions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("country_name", sa.String(length=100), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "seasons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("competition_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("api_season_year", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("winner_determined_at", sa.DateTime(), nullable=True),
        sa.Column("bonus_mode_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["competition_id"], ["competitions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_seasons_api_season_year", "seasons", ["api_season_year"])
    op.create_index("idx_season_current", "seasons", ["is_current"])
    op.create_index("idx_season_completed", "seasons", ["completed_at", "winner_determined_at"])

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("short_name", sa.String(length=10), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("api_team_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("api_team_id"),
    )
    op.create_index("ix_teams_short_name", "teams", ["short_name"])

    op.create_table(
        "fixtures",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("home_team_id", sa.Integer(), nullable=False),
        sa.Column("away_team_id", sa.Integer(), nullable=False),
        sa.Column("kickoff", sa.DateTime(), nullable=False),
        sa.Column("status_short", sa.String(length=10), nullable=False, server_default="NS"),
        sa.Column("home_goals", sa.Integer(), nullable=True),
        sa.Column("away_goals", sa.Integer(), nullable=True),
        sa.Column("result", sa.String(length=1), nullable=True),
        sa.Column("api_fixture_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.ForeignKeyConstraint(["home_team_id"], ["teams.id"]),
        sa.ForeignKeyConstraint(["away_team_id"], ["teams.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("api_fixture_id"),
        sa.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
    )
    op.create_index("idx_fixture_season_status", "fixtures", ["season_id", "status_short"])
    op.create_index("idx_fixture_kickoff", "fixtures", ["kickoff"])

    op.create_table(
        "betting_rounds",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("is_bonus_round", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("scored_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_round_status", "betting_rounds", ["status"])
    op.create_index("idx_round_scored_at", "betting_rounds", ["scored_at"])

    op.create_table(
        "betting_round_fixtures",
        sa.Column("betting_round_id", sa.Integer(), nullable=False),
        sa.Column("fixture_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["betting_round_id"], ["betting_rounds.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["fixture_id"], ["fixtures.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("betting_round_id", "fixture_id"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("full_name", sa.String(length=120), nullable=True),
        sa.Column("email", sa.String(length=120), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])

    op.create_table(
        "user_bets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("fixture_id", sa.Integer(), nullable=False),
        sa.Column("betting_round_id", sa.Integer(), nullable=False),
        sa.Column("prediction", sa.String(length=1), nullable=False),
        sa.Column("points_awarded", sa.Integer(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["fixture_id"], ["fixtures.id"]),
        sa.ForeignKeyConstraint(["betting_round_id"], ["betting_rounds.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "betting_round_id", "fixture_id", name="unique_user_round_fixture_bet"
        ),
    )
    op.create_index("idx_bet_round", "user_bets", ["betting_round_id"])
    op.create_index("idx_bet_user", "user_bets", ["user_id"])
    op.create_index("idx_bet_fixture", "user_bets", ["fixture_id"])

    op.create_table(
        "user_round_dynamic_points",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("betting_round_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("dynamic_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("question_1_correct", sa.Boolean(), nullable=True),
        sa.Column("question_2_correct", sa.Boolean(), nullable=True),
        sa.Column("question_3_correct", sa.Boolean(), nullable=True),
        sa.Column("question_4_correct", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["betting_round_id"], ["betting_rounds.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "betting_round_id", name="user_round_dynamic_points_unique_user_round"
        ),
    )
    op.create_index(
        "idx_dynamic_points_round", "user_round_dynamic_points", ["betting_round_id"]
    )

    op.create_table(
        "season_winners",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=True),
        sa.Column("game_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dynamic_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"]),
        sa.ForeignKeyConstraint(["league_id"], ["competitions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("season_id", "user_id", name="unique_season_user_winner"),
    )
    op.create_index("idx_winner_user", "season_winners", ["user_id"])


def downgrade():
    op.drop_index("idx_winner_user", table_name="season_winners")
    op.drop_table("season_winners")
    op.drop_index("idx_dynamic_points_round", table_name="user_round_dynamic_points")
    op.drop_table("user_round_dynamic_points")
    op.drop_index("idx_bet_fixture", table_name="user_bets")
    op.drop_index("idx_bet_user", table_name="user_bets")
    op.drop_index("idx_bet_round", table_name="user_bets")
    op.drop_table("user_bets")
    op.drop_index("ix_profiles_email", table_name="profiles")
    op.drop_table("profiles")
    op.drop_table("betting_round_fixtures")
    op.drop_index("idx_round_scored_at", table_name="betting_rounds")
    op.drop_index("idx_round_status", table_name="betting_rounds")
    op.drop_table("betting_rounds")
    op.drop_index("idx_fixture_kickoff", table_name="fixtures")
    op.drop_index("idx_fixture_season_status", table_name="fixtures")
    op.drop_table("fixtures")
    op.drop_index("ix_teams_short_name", table_name="teams")
    op.drop_table("teams")
    op.drop_index("idx_season_completed", table_name="seasons")
    op.drop_index("idx_season_current", table_name="seasons")
    op.drop_index("ix_seasons_api_season_year", table_name="seasons")
    op.drop_table("seasons")
    op.drop_table("competitions")
