"""Cup standings from the per-round cup points table"""

import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import Profile, Season, UserLastRoundSpecialPoints
from app.services.standings_service import assign_ranks

logger = logging.getLogger(__name__)


def get_cup_standings(season_id=None):
    """Ranked cup standings for a season (the current one by default).

    Sorted by total points descending, then username. Ties share a rank
    (1, 2, 2, 4).

    Returns:
        list of {user_id, username, total_points, rounds_participated,
        rank, position}; [] when there is no season or no cup points;
        None on database error
    """
    try:
        if season_id is None:
            season = Season.get_current_season()
            if season is None:
                logger.info("No current season; cup standings are empty")
                return []
            season_id = season.id

        rows = (
            db.session.query(
                UserLastRoundSpecialPoints.user_id,
                func.coalesce(func.sum(UserLastRoundSpecialPoints.points), 0).label("total_points"),
                func.count(func.distinct(UserLastRoundSpecialPoints.betting_round_id)).label(
                    "rounds_participated"
                ),
            )
            .filter(UserLastRoundSpecialPoints.season_id == season_id)
            .group_by(UserLastRoundSpecialPoints.user_id)
            .all()
        )
        names = Profile.get_names(row.user_id for row in rows)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to load cup standings for season {season_id}: {e}", exc_info=True)
        return None

    entries = [
        {
            "user_id": row.user_id,
            "username": names.get(row.user_id, row.user_id),
            "total_points": int(row.total_points),
            "rounds_participated": int(row.rounds_participated),
        }
        for row in rows
    ]
    entries.sort(key=lambda entry: (-entry["total_points"], entry["username"] or ""))
    assign_ranks(entries, score_key="total_points")
    for entry in entries:
        entry["position"] = entry["rank"]

    logger.info(f"Calculated cup standings for {len(entries)} users in season {season_id}")
    return entries
