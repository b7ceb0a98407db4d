from datetime import datetime, timezone

from app import db


class UserLastRoundSpecialPoints(db.Model):
    """Cup points a user earned in one betting round of a season"""

    __tablename__ = "user_last_round_special_points"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False)
    betting_round_id = db.Column(
        db.Integer, db.ForeignKey("betting_rounds.id"), nullable=False
    )
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    points = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "user_id",
            "betting_round_id",
            "season_id",
            name="unique_user_round_season_cup_points",
        ),
        db.Index("idx_cup_points_user_season", "user_id", "season_id"),
        db.Index("idx_cup_points_season", "season_id"),
        db.Index("idx_cup_points_round", "betting_round_id"),
    )

    def __repr__(self):
        return f"<UserLastRoundSpecialPoints season={self.season_id} round={self.betting_round_id} user={self.user_id} pts={self.points}>"
