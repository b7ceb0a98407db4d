"""
Winner Determination Service

Records the Hall of Fame winners of a completed season. Everyone ranked 1 in
the final standings wins (ties are kept, no tiebreak). Existing winner rows
make the operation a no-op, so repeated or concurrent cron runs never
recompute or duplicate winners.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app import db
from app.models import Season, SeasonWinner
from app.models.season_winner import COMPETITION_LEAGUE
from app.services.standings_service import calculate_standings
from app.utils.errors import NOT_FOUND, normalize_error

logger = logging.getLogger(__name__)


def empty_winner_result(season_id):
    return {
        "season_id": season_id,
        "winners": [],
        "total_players": 0,
        "is_season_already_determined": False,
        "errors": [],
    }


def winners_from_rows(rows):
    """Winner dicts rebuilt from stored SeasonWinner rows"""
    is_tied = len(rows) > 1
    return [
        {
            "user_id": row.user_id,
            "username": row.user.full_name if row.user and row.user.full_name else row.user_id,
            "game_points": row.game_points,
            "dynamic_points": row.dynamic_points,
            "total_points": row.total_points,
            "rank": 1,
            "is_tied": is_tied,
        }
        for row in rows
    ]


def pick_winners(standings, score_key="combined_total_score"):
    """Every rank-1 entry of ranked standings, flagged is_tied when shared"""
    top = [entry for entry in standings if entry["rank"] == 1]
    is_tied = len(top) > 1
    return [
        {
            "user_id": entry["user_id"],
            "username": entry.get("username"),
            "game_points": entry.get("game_points", 0),
            "dynamic_points": entry.get("dynamic_points", 0),
            "total_points": entry[score_key],
            "rank": entry["rank"],
            "is_tied": is_tied,
        }
        for entry in top
    ]


class WinnerDeterminationService:
    """Determines and records league winners for completed seasons"""

    competition_type = COMPETITION_LEAGUE

    def determine_season_winners(self, season_id):
        """
        Returns:
            dict: season_id, winners, total_players,
            is_season_already_determined, errors
        """
        result = empty_winner_result(season_id)
        logger.info(f"Starting {self.competition_type} winner determination for season {season_id}")

        try:
            season = db.session.get(Season, season_id)
            if season is None:
                result["errors"].append(
                    normalize_error(f"Season {season_id} not found", kind=NOT_FOUND)
                )
                return result

            existing = SeasonWinner.get_for_season(season_id, self.competition_type)
            if existing:
                logger.info(
                    f"Season {season_id} {self.competition_type} winners already determined "
                    f"({len(existing)} rows)"
                )
                result["is_season_already_determined"] = True
                result["winners"] = winners_from_rows(existing)
                return result

            standings = self._load_standings(season)
            if not standings:
                result["errors"].append(
                    normalize_error(
                        f"Failed to calculate standings or no players found for season {season_id}"
                    )
                )
                logger.error(f"Cannot determine winners for season {season_id} without standings")
                return result

            result["total_players"] = len(standings)

            winners = pick_winners(standings, self._score_key())
            if not winners:
                result["errors"].append(
                    normalize_error(f"No users with rank 1 in standings for season {season_id}")
                )
                return result

            self._record_winners(season, winners)

            result["winners"] = winners
            logger.info(
                f"Season {season_id}: {len(winners)} {self.competition_type} winner"
                f"{'s' if len(winners) > 1 else ''} recorded"
                f"{' (tied for first place)' if winners[0]['is_tied'] else ''}"
                f" with {winners[0]['total_points']} points"
            )
            return result

        except IntegrityError as e:
            # Another run recorded the winners between our check and insert
            db.session.rollback()
            existing = SeasonWinner.get_for_season(season_id, self.competition_type)
            if existing:
                logger.info(f"Season {season_id} winners recorded concurrently by another run")
                result["is_season_already_determined"] = True
                result["winners"] = winners_from_rows(existing)
                return result
            logger.error(f"Failed to record winners for season {season_id}: {e}", exc_info=True)
            result["winners"] = []
            result["errors"].append(
                normalize_error(e, message=f"Failed to record winners for season {season_id}")
            )
            return result

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to determine winners for season {season_id}: {e}", exc_info=True)
            result["winners"] = []
            result["errors"].append(
                normalize_error(e, message=f"Failed to determine winners for season {season_id}")
            )
            return result

    def determine_winners_for_completed_seasons(self):
        """Process every completed season whose winners are not yet recorded.

        A failure in one season is recorded on that season's result and the
        loop continues with the rest.

        Returns:
            list of per-season result dicts
        """
        try:
            seasons = self._eligible_seasons()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to load seasons awaiting winners: {e}", exc_info=True)
            raise

        logger.info(
            f"Found {len(seasons)} seasons awaiting {self.competition_type} winner determination"
        )

        results = []
        for season_id in seasons:
            try:
                results.append(self.determine_season_winners(season_id))
            except Exception as e:
                db.session.rollback()
                logger.error(
                    f"Unexpected error determining winners for season {season_id}: {e}",
                    exc_info=True,
                )
                failed = empty_winner_result(season_id)
                failed["errors"].append(
                    normalize_error(
                        e, message=f"Failed to determine winners for season {season_id}"
                    )
                )
                results.append(failed)
        return results

    def _eligible_seasons(self):
        rows = (
            db.session.query(Season.id)
            .filter(
                Season.completed_at.isnot(None),
                Season.winner_determined_at.is_(None),
            )
            .order_by(Season.completed_at.asc())
            .all()
        )
        return [row.id for row in rows]

    def _score_key(self):
        return "combined_total_score"

    def _load_standings(self, season):
        return calculate_standings(season_id=season.id)

    def _record_winners(self, season, winners):
        """Upsert winner rows and stamp the season in one transaction"""
        for winner in winners:
            SeasonWinner.upsert(
                season.id,
                winner["user_id"],
                self.competition_type,
                league_id=season.competition_id,
                game_points=winner["game_points"],
                dynamic_points=winner["dynamic_points"],
                total_points=winner["total_points"],
            )
        season.winner_determined_at = datetime.now(timezone.utc)
        db.session.commit()
