"""
Season Completion Detector

Marks the current season complete (stamps completed_at) once every one of
its fixtures has reached a final status and all of its betting rounds are
scored. Winner determination picks the season up afterwards.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import BettingRound, Fixture, Season
from app.models.betting_round import ROUND_SCORED
from app.models.fixture import FINAL_STATUSES
from app.utils.errors import NOT_FOUND, normalize_error

logger = logging.getLogger(__name__)


def _fixture_counts(season_id):
    """(total, finished) fixture counts for a season"""
    total, finished = (
        db.session.query(
            func.count(Fixture.id),
            func.coalesce(
                func.sum(case((Fixture.status_short.in_(FINAL_STATUSES), 1), else_=0)),
                0,
            ),
        )
        .filter(Fixture.season_id == season_id)
        .one()
    )
    return int(total or 0), int(finished or 0)


def _unscored_round_count(season_id):
    return BettingRound.query.filter(
        BettingRound.season_id == season_id, BettingRound.status != ROUND_SCORED
    ).count()


class SeasonCompletionDetector:
    """Detects seasons whose fixtures are all played"""

    def detect_and_mark_completed_seasons(self):
        """
        Returns:
            dict: completed_season_ids, errors, processed_count (seasons
            checked), skipped_count (seasons still in progress)
        """
        result = {
            "completed_season_ids": [],
            "errors": [],
            "processed_count": 0,
            "skipped_count": 0,
        }

        try:
            seasons = (
                Season.query.filter(
                    Season.is_current.is_(True), Season.completed_at.is_(None)
                )
                .order_by(Season.id)
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to load seasons for completion check: {e}", exc_info=True)
            result["errors"].append(
                normalize_error(e, message="Failed to load seasons for completion check")
            )
            return result

        logger.info(f"Checking {len(seasons)} seasons for completion")

        for season in seasons:
            try:
                if self._check_season(season):
                    result["completed_season_ids"].append(season.id)
                    result["processed_count"] += 1
                else:
                    result["skipped_count"] += 1
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(
                    f"Failed to check completion of season {season.id}: {e}", exc_info=True
                )
                result["errors"].append(
                    normalize_error(
                        e, message=f"Failed to check completion of season {season.id}"
                    )
                )

        logger.info(
            f"Season completion check: {len(result['completed_season_ids'])} completed, "
            f"{result['skipped_count']} in progress, {len(result['errors'])} errors"
        )
        return result

    def _check_season(self, season):
        """Stamp completed_at once every fixture is final and every round scored.

        Returns True if stamped.
        """
        total, finished = _fixture_counts(season.id)

        if total == 0:
            logger.info(f"Season {season.id} has no fixtures, skipping")
            return False

        if finished < total:
            logger.debug(f"Season {season.id}: {finished}/{total} fixtures final")
            return False

        unscored = _unscored_round_count(season.id)
        if unscored:
            logger.info(f"Season {season.id}: fixtures final, {unscored} round(s) not scored yet")
            return False

        # Guarded update so a concurrent run cannot overwrite the first stamp
        updated = Season.query.filter(
            Season.id == season.id, Season.completed_at.is_(None)
        ).update(
            {"completed_at": datetime.now(timezone.utc)}, synchronize_session="fetch"
        )
        db.session.commit()

        if updated:
            logger.info(f"Season {season.id} ({season.name}) marked as complete")
        return bool(updated)

    def get_season_completion_stats(self, season_id):
        """Fixture progress for a season

        Returns:
            dict with season_id, total_fixtures, finished_fixtures,
            remaining_fixtures, completion_percentage, is_complete, errors
        """
        try:
            season = db.session.get(Season, season_id)
            if season is None:
                return {
                    "season_id": season_id,
                    "errors": [
                        normalize_error(f"Season {season_id} not found", kind=NOT_FOUND)
                    ],
                }

            total, finished = _fixture_counts(season_id)
            return {
                "season_id": season_id,
                "total_fixtures": total,
                "finished_fixtures": finished,
                "remaining_fixtures": total - finished,
                "completion_percentage": round(finished / total * 100, 1) if total else 0.0,
                "is_complete": season.completed_at is not None,
                "errors": [],
            }
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to load completion stats for season {season_id}: {e}")
            return {
                "season_id": season_id,
                "errors": [
                    normalize_error(
                        e, message=f"Failed to load completion stats for season {season_id}"
                    )
                ],
            }
