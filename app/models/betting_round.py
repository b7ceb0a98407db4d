from datetime import datetime, timezone

from app import db

ROUND_OPEN = "open"
ROUND_LOCKED = "locked"
ROUND_SCORING = "scoring"
ROUND_SCORED = "scored"

# Many-to-many: which fixtures belong to which betting round
betting_round_fixtures = db.Table(
    "betting_round_fixtures",
    db.Column(
        "betting_round_id",
        db.Integer,
        db.ForeignKey("betting_rounds.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "fixture_id",
        db.Integer,
        db.ForeignKey("fixtures.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class BettingRound(db.Model):
    __tablename__ = "betting_rounds"

    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=True)
    name = db.Column(db.String(100), nullable=False)

    # open -> locked -> scoring -> scored
    status = db.Column(db.String(20), nullable=False, default=ROUND_OPEN)
    is_bonus_round = db.Column(db.Boolean, default=False, nullable=False)
    scored_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    fixtures = db.relationship(
        "Fixture",
        secondary=betting_round_fixtures,
        backref=db.backref("betting_rounds", lazy="dynamic"),
        lazy="select",
    )
    bets = db.relationship(
        "UserBet", backref="betting_round", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_round_status", "status"),
        db.Index("idx_round_scored_at", "scored_at"),
    )

    def __repr__(self):
        return f"<BettingRound {self.id} {self.name} [{self.status}]>"

    def to_dict(self):
        return {
            "id": self.id,
            "season_id": self.season_id,
            "name": self.name,
            "status": self.status,
            "is_bonus_round": self.is_bonus_round,
            "scored_at": self.scored_at.isoformat() if self.scored_at else None,
            "fixture_ids": [fixture.id for fixture in self.fixtures],
        }
