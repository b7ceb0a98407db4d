from datetime import datetime, timezone

from app import db


class UserBet(db.Model):
    __tablename__ = "user_bets"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False)
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), nullable=False)
    betting_round_id = db.Column(
        db.Integer, db.ForeignKey("betting_rounds.id"), nullable=False
    )

    # '1' home win, 'X' draw, '2' away win
    prediction = db.Column(db.String(1), nullable=False)

    # Null until the round is scored, then written exactly once
    points_awarded = db.Column(db.Integer)

    submitted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "betting_round_id", "fixture_id", name="unique_user_round_fixture_bet"
        ),
        db.Index("idx_bet_round", "betting_round_id"),
        db.Index("idx_bet_user", "user_id"),
        db.Index("idx_bet_fixture", "fixture_id"),
    )

    def __repr__(self):
        return f"<UserBet user={self.user_id} fixture={self.fixture_id} {self.prediction} pts={self.points_awarded}>"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "fixture_id": self.fixture_id,
            "betting_round_id": self.betting_round_id,
            "prediction": self.prediction,
            "points_awarded": self.points_awarded,
        }
