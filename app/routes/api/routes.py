import logging
from functools import wraps

from flask import abort, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import Season, SeasonWinner
from app.models.season_winner import COMPETITION_CUP, COMPETITION_LEAGUE
from app.routes.api import bp
from app.services.cup import CupActivationStatusChecker, get_cup_standings
from app.services.standings_service import calculate_standings
from app.utils.cache_utils import cached_route
from app.utils.cron_alerts import alerting_service
from app.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

HALL_OF_FAME_SORTS = {
    "newest": (SeasonWinner.created_at.desc(),),
    "oldest": (SeasonWinner.created_at.asc(),),
    "points_desc": (SeasonWinner.total_points.desc(),),
    "points_asc": (SeasonWinner.total_points.asc(),),
}
COMPETITION_FILTERS = ("all", COMPETITION_LEAGUE, COMPETITION_CUP)
MAX_PAGE_SIZE = 100


def no_store(f):
    """Mark monitoring responses as uncacheable"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = current_app.make_response(f(*args, **kwargs))
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        return response

    return decorated_function


def _int_arg(name, default):
    value = request.args.get(name, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        abort(400)


def _winner_entry(winner):
    season = winner.season
    return {
        **winner.to_dict(),
        "season": season.to_dict() if season else None,
        "competition": (
            season.competition.to_dict() if season and season.competition else None
        ),
    }


@bp.route("/standings")
@cached_route(timeout=60)
def standings():
    """League standings plus cup standings when the cup is active"""
    league_standings = calculate_standings()
    if league_standings is None:
        logger.error("League standings calculation failed")
        abort(500)

    cup_status = CupActivationStatusChecker().check_current_season()
    cup = {
        "is_active": cup_status["is_activated"],
        "season_id": cup_status["season_id"],
        "season_name": cup_status["season_name"],
        "activated_at": cup_status["activated_at"],
    }

    cup_standings = None
    if cup_status["is_activated"]:
        cup_standings = get_cup_standings(cup_status["season_id"])
        if cup_standings is None:
            logger.warning("Cup standings unavailable, returning league standings only")
        else:
            cup["standings"] = cup_standings

    metadata = {
        "timestamp": get_utc_time().isoformat(),
        "has_cup_data": cup_standings is not None,
        "total_league_participants": len(league_standings),
    }
    if cup_standings is not None:
        metadata["total_cup_participants"] = len(cup_standings)

    return {"league_standings": league_standings, "cup": cup, "metadata": metadata}


@bp.route("/hall-of-fame")
def hall_of_fame():
    """All recorded winners, paginated"""
    limit = min(max(_int_arg("limit", 20), 1), MAX_PAGE_SIZE)
    offset = max(_int_arg("offset", 0), 0)
    competition_type = request.args.get("competition_type", "all")
    sort = request.args.get("sort", "newest")

    if competition_type not in COMPETITION_FILTERS:
        return jsonify({"error": f"Invalid competition_type: {competition_type}"}), 400
    if sort not in HALL_OF_FAME_SORTS:
        return jsonify({"error": f"Invalid sort: {sort}"}), 400

    query = SeasonWinner.query
    if competition_type != "all":
        query = query.filter(SeasonWinner.competition_type == competition_type)
    competition_id = request.args.get("competition_id", type=int)
    if competition_id is not None:
        query = query.filter(SeasonWinner.league_id == competition_id)

    try:
        total = query.count()
        winners = (
            query.order_by(*HALL_OF_FAME_SORTS[sort], SeasonWinner.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to load hall of fame: {e}", exc_info=True)
        return jsonify({"error": "Database error"}), 500

    return {
        "success": True,
        "data": [_winner_entry(winner) for winner in winners],
        "pagination": {
            "total_items": total,
            "total_pages": -(-total // limit),
            "current_page": offset // limit + 1,
            "page_size": limit,
            "has_more": offset + limit < total,
        },
        "query_info": {
            "sort": sort,
            "competition_id": competition_id,
            "competition_type": competition_type,
        },
    }


@bp.route("/hall-of-fame/season/<int:season_id>")
def hall_of_fame_season(season_id):
    """League and cup winners of one season"""
    season = db.session.get(Season, season_id)
    if season is None:
        return jsonify({"error": "Season not found"}), 404

    league = SeasonWinner.get_for_season(season_id, COMPETITION_LEAGUE)
    cup = SeasonWinner.get_for_season(season_id, COMPETITION_CUP)
    return {
        "success": True,
        "season": season.to_dict(),
        "league_winners": [winner.to_dict() for winner in league],
        "cup_winners": [winner.to_dict() for winner in cup],
        "is_determined": bool(league),
    }


@bp.route("/health/cron")
@no_store
def cron_health():
    """Database reachability, cron configuration and per-job execution health"""
    checks = {}

    try:
        db.session.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Cron health database check failed: {e}")
        checks["database"] = {"status": "unhealthy", "error": str(e)}

    checks["configuration"] = {
        "status": "healthy" if current_app.config.get("CRON_SECRET") else "unhealthy",
        "cron_secret_configured": bool(current_app.config.get("CRON_SECRET")),
        "alerts_enabled": bool(current_app.config.get("CRON_ALERTS_ENABLED")),
    }

    jobs = alerting_service.get_health_summary()
    failing_jobs = [name for name, job in jobs.items() if job["status"] == "failing"]
    checks["jobs"] = {
        "status": "unhealthy" if failing_jobs else "healthy",
        "failing": failing_jobs,
    }

    healthy = all(check["status"] == "healthy" for check in checks.values())
    payload = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": get_utc_time().isoformat(),
        "checks": checks,
        "cron_jobs": jobs,
    }
    return payload, 200 if healthy else 503
