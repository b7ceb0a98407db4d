"""
Cron endpoints

Thin wrappers: authenticate the shared secret, run the job from
app.services.cron_jobs and return its payload.
"""

import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request

from app.routes.cron import bp
from app.services import cron_jobs

logger = logging.getLogger(__name__)


def _provided_secret():
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):]
    return request.headers.get("X-Cron-Secret")


def cron_secret_required(f):
    """Accept `Authorization: Bearer <secret>` or `X-Cron-Secret: <secret>`"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("CRON_SECRET")
        if not expected:
            logger.error("CRON_SECRET is not configured")
            return jsonify({"error": "Server configuration error"}), 500

        provided = _provided_secret()
        if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
            logger.warning(
                f"Unauthorized cron request to {request.path} "
                f"(authorization header: {'present' if request.headers.get('Authorization') else 'missing'}, "
                f"x-cron-secret header: {'present' if request.headers.get('X-Cron-Secret') else 'missing'})"
            )
            return jsonify({"error": "Unauthorized"}), 401

        return f(*args, **kwargs)

    return decorated_function


@bp.route("/process-rounds")
@cron_secret_required
def process_rounds():
    payload, status = cron_jobs.run_process_rounds()
    return jsonify(payload), status


@bp.route("/season-completion")
@cron_secret_required
def season_completion():
    payload, status = cron_jobs.run_season_completion()
    return jsonify(payload), status


@bp.route("/winner-determination")
@cron_secret_required
def winner_determination():
    payload, status = cron_jobs.run_winner_determination()
    return jsonify(payload), status


@bp.route("/cup-activation")
@cron_secret_required
def cup_activation():
    payload, status = cron_jobs.run_cup_activation()
    return jsonify(payload), status
