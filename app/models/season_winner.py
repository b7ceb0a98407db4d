"""Season Winner Model - Hall of Fame records for league and cup champions"""

from datetime import datetime, timezone

from app import db

COMPETITION_LEAGUE = "league"
COMPETITION_CUP = "last_round_special"
COMPETITION_TYPES = (COMPETITION_LEAGUE, COMPETITION_CUP)


class SeasonWinner(db.Model):
    """One row per (season, user, competition type); ties produce several rows"""

    __tablename__ = "season_winners"

    id = db.Column(db.Integer, primary_key=True)

    # Winner identification
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False)
    league_id = db.Column(db.Integer, db.ForeignKey("competitions.id"), nullable=True)

    competition_type = db.Column(
        db.String(50), nullable=False, default=COMPETITION_LEAGUE
    )

    # Stats at time of win
    game_points = db.Column(db.Integer, default=0, nullable=False)
    dynamic_points = db.Column(db.Integer, default=0, nullable=False)
    total_points = db.Column(db.Integer, default=0, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    season = db.relationship("Season", backref=db.backref("winners", lazy="dynamic"))
    user = db.relationship("Profile", backref=db.backref("season_wins", lazy="dynamic"))

    # Constraints
    __table_args__ = (
        db.UniqueConstraint(
            "season_id",
            "user_id",
            "competition_type",
            name="unique_season_user_competition_winner",
        ),
        db.CheckConstraint(
            "competition_type IN ('league', 'last_round_special')",
            name="season_winners_competition_type_check",
        ),
        db.Index("idx_winner_season_competition", "season_id", "competition_type"),
        db.Index("idx_winner_user", "user_id"),
        db.Index("idx_winner_competition_type", "competition_type"),
    )

    def __repr__(self):
        return f"<SeasonWinner {self.competition_type} season={self.season_id}: User {self.user_id}>"

    @staticmethod
    def get_for_season(season_id, competition_type=COMPETITION_LEAGUE):
        """Existing winner rows for a season and competition"""
        return (
            SeasonWinner.query.filter_by(
                season_id=season_id, competition_type=competition_type
            )
            .order_by(SeasonWinner.total_points.desc(), SeasonWinner.id.asc())
            .all()
        )

    @staticmethod
    def upsert(season_id, user_id, competition_type, **values):
        """Insert or overwrite the row keyed by (season, user, competition type).

        The caller owns the transaction.
        """
        winner = SeasonWinner.query.filter_by(
            season_id=season_id, user_id=user_id, competition_type=competition_type
        ).first()
        if winner is None:
            winner = SeasonWinner(
                season_id=season_id, user_id=user_id, competition_type=competition_type
            )
            db.session.add(winner)

        for key, value in values.items():
            setattr(winner, key, value)
        return winner

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "season_id": self.season_id,
            "user_id": self.user_id,
            "league_id": self.league_id,
            "user": self.user.to_dict() if self.user else None,
            "competition_type": self.competition_type,
            "game_points": self.game_points,
            "dynamic_points": self.dynamic_points,
            "total_points": self.total_points,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
