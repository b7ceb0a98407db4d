"""
Standings Calculator

Combines game points (sum of awarded bet points) with dynamic points
(questionnaire points of the latest scored round) into a ranked leaderboard.
Ranks use standard competition ranking: equal scores share a rank and the
next rank skips by the size of the tie group (1, 2, 2, 4).
"""

import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import BettingRound, Profile, UserBet, UserRoundDynamicPoints
from app.models.betting_round import ROUND_SCORED

logger = logging.getLogger(__name__)


def assign_ranks(entries, score_key="combined_total_score"):
    """Set ``rank`` on entries already sorted by score descending.

    An entry with a strictly lower score than the one before it gets its
    1-based position; otherwise it inherits the previous rank.
    """
    previous_score = None
    previous_rank = 0
    for position, entry in enumerate(entries, start=1):
        score = entry[score_key]
        if previous_score is None or score < previous_score:
            rank = position
        else:
            rank = previous_rank
        entry["rank"] = rank
        previous_score = score
        previous_rank = rank
    return entries


def aggregate_game_points(season_id=None):
    """Sum of awarded points per bettor.

    Bettors whose bets are all unscored are included with 0. With a
    season_id only bets in that season's rounds count.

    Returns:
        list of {"user_id", "total_points"} or None on database error
    """
    try:
        query = db.session.query(
            UserBet.user_id,
            func.coalesce(func.sum(UserBet.points_awarded), 0).label("total_points"),
        )
        if season_id is not None:
            query = query.join(
                BettingRound, BettingRound.id == UserBet.betting_round_id
            ).filter(BettingRound.season_id == season_id)

        rows = query.group_by(UserBet.user_id).order_by(UserBet.user_id).all()
        return [
            {"user_id": row.user_id, "total_points": int(row.total_points)}
            for row in rows
        ]
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to aggregate game points: {e}", exc_info=True)
        return None


def get_latest_scored_round(season_id=None):
    query = BettingRound.query.filter(
        BettingRound.status == ROUND_SCORED, BettingRound.scored_at.isnot(None)
    )
    if season_id is not None:
        query = query.filter(BettingRound.season_id == season_id)
    return query.order_by(BettingRound.scored_at.desc(), BettingRound.id.desc()).first()


def get_latest_dynamic_points(season_id=None):
    """Dynamic points per user for the most recently scored round.

    Returns:
        dict user_id -> points; {} when no round has been scored yet;
        None when the lookup itself failed
    """
    try:
        latest_round = get_latest_scored_round(season_id)
        if latest_round is None:
            logger.info("No scored round yet; dynamic points are empty")
            return {}

        rows = UserRoundDynamicPoints.query.filter_by(
            betting_round_id=latest_round.id
        ).all()
        return {row.user_id: row.dynamic_points or 0 for row in rows}
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to load dynamic points: {e}", exc_info=True)
        return None


def calculate_standings(season_id=None):
    """Ranked leaderboard, or None when either points source failed.

    Without a season_id all bets count (the live leaderboard); winner
    determination passes the season it is closing.

    Each entry: user_id, username, game_points, dynamic_points,
    combined_total_score, rank.
    """
    game_points = aggregate_game_points(season_id)
    if game_points is None:
        logger.error("Standings aborted: game points unavailable")
        return None

    dynamic_points = get_latest_dynamic_points(season_id)
    if dynamic_points is None:
        logger.error("Standings aborted: dynamic points unavailable")
        return None

    try:
        names = Profile.get_names(row["user_id"] for row in game_points)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning(f"Could not load profile names, using ids: {e}")
        names = {}

    entries = []
    for row in game_points:
        user_id = row["user_id"]
        dynamic = dynamic_points.get(user_id) or 0
        entries.append(
            {
                "user_id": user_id,
                "username": names.get(user_id, user_id),
                "game_points": row["total_points"],
                "dynamic_points": dynamic,
                "combined_total_score": row["total_points"] + dynamic,
            }
        )

    # sorted() is stable: tied users keep their aggregation order
    entries = sorted(entries, key=lambda entry: entry["combined_total_score"], reverse=True)
    assign_ranks(entries)

    logger.info(f"Calculated standings for {len(entries)} users")
    return entries
