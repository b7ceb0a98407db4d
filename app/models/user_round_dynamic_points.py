from datetime import datetime, timezone

from app import db


class UserRoundDynamicPoints(db.Model):
    """Questionnaire (bonus question) points per user per round"""

    __tablename__ = "user_round_dynamic_points"

    id = db.Column(db.Integer, primary_key=True)
    betting_round_id = db.Column(
        db.Integer, db.ForeignKey("betting_rounds.id"), nullable=False
    )
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), nullable=False)
    dynamic_points = db.Column(db.Integer, default=0, nullable=False)

    question_1_correct = db.Column(db.Boolean)
    question_2_correct = db.Column(db.Boolean)
    question_3_correct = db.Column(db.Boolean)
    question_4_correct = db.Column(db.Boolean)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "betting_round_id", name="user_round_dynamic_points_unique_user_round"
        ),
        db.Index("idx_dynamic_points_round", "betting_round_id"),
    )

    def __repr__(self):
        return f"<UserRoundDynamicPoints round={self.betting_round_id} user={self.user_id} pts={self.dynamic_points}>"

    @staticmethod
    def upsert_for_round(round_id, updates):
        """Insert or update dynamic points for many users of one round.

        Args:
            round_id: Betting round ID
            updates: iterable of dicts with user_id, total_points and
                optional q1_correct..q4_correct flags

        The caller owns the transaction.
        """
        existing = {
            row.user_id: row
            for row in UserRoundDynamicPoints.query.filter_by(
                betting_round_id=round_id
            ).all()
        }

        count = 0
        for update in updates or []:
            row = existing.get(update["user_id"])
            if row is None:
                row = UserRoundDynamicPoints(
                    betting_round_id=round_id, user_id=update["user_id"]
                )
                db.session.add(row)
                existing[update["user_id"]] = row

            row.dynamic_points = int(update.get("total_points") or 0)
            row.question_1_correct = update.get("q1_correct")
            row.question_2_correct = update.get("q2_correct")
            row.question_3_correct = update.get("q3_correct")
            row.question_4_correct = update.get("q4_correct")
            count += 1

        return count
