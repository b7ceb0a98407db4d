from datetime import datetime, timezone

from app import db


class Season(db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.Integer, primary_key=True)
    competition_id = db.Column(
        db.Integer, db.ForeignKey("competitions.id"), nullable=True
    )
    name = db.Column(db.String(100), nullable=False)  # e.g., "Eliteserien 2025"
    api_season_year = db.Column(db.Integer, index=True)

    # Season dates
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)

    # Status
    is_current = db.Column(db.Boolean, default=False, nullable=False)
    completed_at = db.Column(db.DateTime)
    winner_determined_at = db.Column(db.DateTime)

    # Season-wide double points for every round
    bonus_mode_active = db.Column(db.Boolean, default=False, nullable=False)

    # Last Round Special (cup) activation, recorded at most once
    last_round_special_activated = db.Column(db.Boolean, default=False, nullable=False)
    last_round_special_activated_at = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    fixtures = db.relationship(
        "Fixture", backref="season", lazy="dynamic", cascade="all, delete-orphan"
    )
    betting_rounds = db.relationship(
        "BettingRound", backref="season", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_season_current", "is_current"),
        db.Index("idx_season_completed", "completed_at", "winner_determined_at"),
    )

    def __repr__(self):
        return f"<Season {self.name}>"

    @staticmethod
    def get_current_season():
        """Get the season currently being played"""
        return Season.query.filter_by(is_current=True).first()

    def make_current(self):
        """Mark this season as current (clears the flag on all others)"""
        Season.query.update({"is_current": False})
        self.is_current = True
        db.session.commit()

    def to_dict(self):
        """Convert season to dictionary for API responses"""
        return {
            "id": self.id,
            "competition_id": self.competition_id,
            "name": self.name,
            "api_season_year": self.api_season_year,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_current": self.is_current,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "winner_determined_at": (
                self.winner_determined_at.isoformat()
                if self.winner_determined_at
                else None
            ),
            "bonus_mode_active": self.bonus_mode_active,
            "last_round_special_activated": self.last_round_special_activated,
            "last_round_special_activated_at": (
                self.last_round_special_activated_at.isoformat()
                if self.last_round_special_activated_at
                else None
            ),
        }
