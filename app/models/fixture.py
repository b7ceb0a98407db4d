from datetime import datetime, timezone

from app import db

# Statuses after which a fixture's result can be scored
FINISHED_STATUSES = ("FT", "AET", "PEN")

# Statuses after which a fixture will never be played again (season completion)
FINAL_STATUSES = ("FT", "AET", "PEN", "AWD", "WO")

# Statuses of fixtures that have not kicked off yet
NOT_STARTED_STATUSES = ("NS", "TBD")

HOME_WIN = "1"
DRAW = "X"
AWAY_WIN = "2"
OUTCOMES = (HOME_WIN, DRAW, AWAY_WIN)


def result_from_goals(home_goals, away_goals):
    """Derive the 1/X/2 outcome from a final score (None if incomplete)"""
    if home_goals is None or away_goals is None:
        return None
    if home_goals > away_goals:
        return HOME_WIN
    if home_goals < away_goals:
        return AWAY_WIN
    return DRAW


class Fixture(db.Model):
    __tablename__ = "fixtures"

    id = db.Column(db.Integer, primary_key=True)

    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)

    # Teams
    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    # Timing
    kickoff = db.Column(db.DateTime, nullable=False)

    # Provider short status: NS, TBD, 1H, HT, 2H, FT, AET, PEN, AWD, WO, PST, CANC ...
    status_short = db.Column(db.String(10), nullable=False, default="NS")

    # Scores
    home_goals = db.Column(db.Integer)
    away_goals = db.Column(db.Integer)

    # Canonical outcome once finished: '1', 'X' or '2'
    result = db.Column(db.String(1))

    # External ID for fixture provider integration
    api_fixture_id = db.Column(db.Integer, unique=True, index=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    bets = db.relationship(
        "UserBet", backref="fixture", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_fixture_season_status", "season_id", "status_short"),
        db.Index("idx_fixture_kickoff", "kickoff"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
    )

    def __repr__(self):
        return f"<Fixture {self.id} {self.home_team_id} v {self.away_team_id} [{self.status_short}]>"

    @property
    def is_finished(self):
        """Finished and scoreable"""
        return self.status_short in FINISHED_STATUSES

    @property
    def is_final(self):
        """Finished for good, including awarded and walkover results"""
        return self.status_short in FINAL_STATUSES

    @property
    def settled_result(self):
        """The stored result, falling back to the one implied by the goals"""
        if self.result in OUTCOMES:
            return self.result
        return result_from_goals(self.home_goals, self.away_goals)

    def to_dict(self):
        return {
            "id": self.id,
            "season_id": self.season_id,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "kickoff": self.kickoff.isoformat() if self.kickoff else None,
            "status_short": self.status_short,
            "home_goals": self.home_goals,
            "away_goals": self.away_goals,
            "result": self.result,
        }
