import uuid
from datetime import datetime, timezone

from app import db


class Profile(db.Model):
    """Player profile. Authentication lives outside this service."""

    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = db.Column(db.String(120))
    email = db.Column(db.String(120), index=True)
    avatar_url = db.Column(db.String(500))
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    bets = db.relationship("UserBet", backref="user", lazy="dynamic")

    def __repr__(self):
        return f"<Profile {self.full_name or self.id}>"

    @staticmethod
    def get_names(user_ids):
        """Map user ids to display names in one query"""
        user_ids = list(user_ids)
        if not user_ids:
            return {}
        rows = db.session.query(Profile.id, Profile.full_name).filter(
            Profile.id.in_(user_ids)
        )
        return {row.id: row.full_name or row.id for row in rows}

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
        }
