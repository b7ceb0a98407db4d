"""Audit trail for cup activation checks"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import CupActivationLog
from app.utils.errors import normalize_error
from app.utils.logging_config import ContextualLogger

logger = logging.getLogger(__name__)


class CupActivationLogger:
    """Writes one CupActivationLog row per detection run.

    Audit failures are logged and swallowed so they never change the
    outcome of the activation run itself.
    """

    def for_session(self, session_id):
        return ContextualLogger(
            "app.services.cup.activation_detection_service", {"session_id": session_id}
        )

    def create_audit_log(self, result):
        """Persist a detection result. Returns the stored log or None."""
        try:
            entry = CupActivationLog(
                session_id=result["session_id"],
                season_id=result.get("season_id"),
                fixture_data=result.get("fixture_data"),
                condition_result=result.get("condition"),
                status_result=result.get("status"),
                activation_result=result.get("activation"),
                should_activate=bool(result.get("should_activate")),
                action_taken=result.get("action_taken", ""),
                reasoning=result.get("reasoning"),
                errors=[normalize_error(error).to_dict() for error in result.get("errors") or []],
                duration_ms=result.get("duration_ms"),
            )
            db.session.add(entry)
            db.session.commit()
            return entry
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(
                f"Failed to write cup activation audit log for session {result.get('session_id')}: {e}",
                exc_info=True,
            )
            return None

    def get_recent(self, limit=20, season_id=None):
        query = CupActivationLog.query
        if season_id is not None:
            query = query.filter_by(season_id=season_id)
        return (
            query.order_by(CupActivationLog.created_at.desc(), CupActivationLog.id.desc())
            .limit(limit)
            .all()
        )
