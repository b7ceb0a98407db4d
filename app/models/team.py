from datetime import datetime, timezone

from app import db


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    short_name = db.Column(db.String(10), index=True)
    logo_url = db.Column(db.String(500))

    # External ID for fixture provider integration
    api_team_id = db.Column(db.Integer, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    home_fixtures = db.relationship(
        "Fixture",
        foreign_keys="Fixture.home_team_id",
        backref=db.backref("home_team", lazy="joined"),
        lazy="dynamic",
    )
    away_fixtures = db.relationship(
        "Fixture",
        foreign_keys="Fixture.away_team_id",
        backref=db.backref("away_team", lazy="joined"),
        lazy="dynamic",
    )

    def __repr__(self):
        return f"<Team {self.name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "short_name": self.short_name,
            "logo_url": self.logo_url,
        }
