from datetime import datetime, timezone

from app import db


class Competition(db.Model):
    """A league the seasons belong to (e.g. a national top division)"""

    __tablename__ = "competitions"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    country_name = db.Column(db.String(100))
    logo_url = db.Column(db.String(500))

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    seasons = db.relationship("Season", backref="competition", lazy="dynamic")

    def __repr__(self):
        return f"<Competition {self.name}>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "country_name": self.country_name,
            "logo_url": self.logo_url,
        }
