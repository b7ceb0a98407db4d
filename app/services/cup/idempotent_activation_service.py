"""Activates the cup for a season exactly once"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import Season
from app.utils.timezone_utils import isoformat_utc

logger = logging.getLogger(__name__)


class IdempotentActivationService:
    """Safe to call repeatedly and concurrently.

    The season row is locked (SELECT ... FOR UPDATE where the database
    supports it) and the flag is flipped with a guarded UPDATE, so a second
    caller observes the first one's activation and reports
    was_already_activated instead of activating again.
    """

    def activate_cup(self, season_id):
        """
        Returns:
            dict: success, was_already_activated, activated_at, season_id, error
        """
        try:
            season = Season.query.filter_by(id=season_id).with_for_update().first()
            if season is None:
                db.session.rollback()
                return self._result(season_id, success=False, error=f"Season {season_id} not found")

            if season.last_round_special_activated:
                activated_at = season.last_round_special_activated_at
                db.session.rollback()
                logger.info(f"Cup already active for season {season_id} since {activated_at}")
                return self._result(
                    season_id, was_already_activated=True, activated_at=activated_at
                )

            activated_at = datetime.now(timezone.utc)
            updated = Season.query.filter(
                Season.id == season_id,
                Season.last_round_special_activated.is_(False),
            ).update(
                {
                    "last_round_special_activated": True,
                    "last_round_special_activated_at": activated_at,
                },
                synchronize_session="fetch",
            )
            db.session.commit()

            if not updated:
                season = db.session.get(Season, season_id)
                logger.info(f"Cup for season {season_id} was activated by another process")
                return self._result(
                    season_id,
                    was_already_activated=True,
                    activated_at=season.last_round_special_activated_at if season else None,
                )

            logger.info(f"Cup activated for season {season_id} at {activated_at.isoformat()}")
            return self._result(season_id, activated_at=activated_at)

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to activate cup for season {season_id}: {e}", exc_info=True)
            return self._result(season_id, success=False, error=str(e))

    def _result(self, season_id, success=True, was_already_activated=False, activated_at=None, error=None):
        return {
            "success": success,
            "was_already_activated": was_already_activated,
            "activated_at": isoformat_utc(activated_at),
            "season_id": season_id,
            "error": error,
        }
