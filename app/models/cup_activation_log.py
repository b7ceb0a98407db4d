from datetime import datetime, timezone

from app import db


class CupActivationLog(db.Model):
    """Audit record of one cup activation check, kept for diagnostic replay"""

    __tablename__ = "cup_activation_logs"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=True)

    # Snapshots of each step
    fixture_data = db.Column(db.JSON)
    condition_result = db.Column(db.JSON)
    status_result = db.Column(db.JSON)
    activation_result = db.Column(db.JSON)

    should_activate = db.Column(db.Boolean, default=False, nullable=False)
    action_taken = db.Column(db.String(255), nullable=False)
    reasoning = db.Column(db.Text)
    errors = db.Column(db.JSON)
    duration_ms = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (db.Index("idx_cup_log_season_created", "season_id", "created_at"),)

    def __repr__(self):
        return f"<CupActivationLog {self.session_id}: {self.action_taken}>"

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "season_id": self.season_id,
            "fixture_data": self.fixture_data,
            "condition_result": self.condition_result,
            "status_result": self.status_result,
            "activation_result": self.activation_result,
            "should_activate": self.should_activate,
            "action_taken": self.action_taken,
            "reasoning": self.reasoning,
            "errors": self.errors or [],
            "duration_ms": self.duration_ms,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
