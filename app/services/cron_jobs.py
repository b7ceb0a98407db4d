"""
Cron job bodies

Each job returns ``(payload, status_code)``. The /cron HTTP routes and the
optional in-process scheduler both call these, so a job behaves the same
whichever invoker fires it. Every run is reported to the cron alerting
service.

Expected failures come back from the services as result objects; only an
unexpected exception turns a run into a 500.
"""

import logging
import time

from app.services.cup import CupActivationDetectionService, CupWinnerDeterminationService
from app.services.cup.activation_detection_service import ACTION_ACTIVATED
from app.services.round_completion_detector import RoundCompletionDetector
from app.services.scoring_service import calculate_and_store_match_points
from app.services.season_completion_detector import SeasonCompletionDetector
from app.services.summary_email_service import trigger_summary_emails
from app.services.winner_determination_service import WinnerDeterminationService
from app.utils.cache_utils import revalidate_paths
from app.utils.cron_alerts import STATUS_FAILURE, STATUS_SUCCESS, alerting_service
from app.utils.errors import error_messages
from app.utils.performance import elapsed_ms
from app.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

JOB_PROCESS_ROUNDS = "process-rounds"
JOB_SEASON_COMPLETION = "season-completion"
JOB_WINNER_DETERMINATION = "winner-determination"
JOB_CUP_ACTIVATION = "cup-activation"


def _timestamp():
    return get_utc_time().isoformat()


def _failure(job_name, execution_id, start_time, error_title, error):
    duration = elapsed_ms(start_time)
    logger.error(f"{job_name} cron job failed after {duration}ms: {error}", exc_info=True)
    alerting_service.complete_execution(
        execution_id, STATUS_FAILURE, str(error), {"duration_ms": duration}, duration_ms=duration
    )
    return (
        {
            "success": False,
            "error": error_title,
            "message": str(error),
            "duration_ms": duration,
            "timestamp": _timestamp(),
        },
        500,
    )


def _scoring_summary(round_id, result):
    return {
        "round_id": round_id,
        "success": result["success"],
        "message": result["message"],
        "bets_processed": result["bets_processed"],
        "bets_updated": result["bets_updated"],
        "scoring_incomplete": result["scoring_incomplete"],
        "skipped_fixture_ids": result["skipped_fixture_ids"],
        "errors": error_messages(result["errors"]),
    }


def run_process_rounds():
    """Detect finished rounds and score each one"""
    start_time = time.monotonic()
    execution_id = alerting_service.start_execution(JOB_PROCESS_ROUNDS)
    logger.info("Starting round processing cron job")

    try:
        detection = RoundCompletionDetector().detect_and_mark_completed_rounds()
        round_ids = detection["completed_round_ids"]
        detection_errors = error_messages(detection["errors"])

        if detection_errors:
            logger.warning(f"Errors during round completion detection: {detection_errors}")

        results = []
        for round_id in round_ids:
            logger.info(f"Scoring round {round_id}")
            scoring = calculate_and_store_match_points(round_id)
            results.append(_scoring_summary(round_id, scoring))
            if not scoring["success"]:
                logger.error(f"Scoring failed for round {round_id}: {scoring['message']}")

        scored = [r for r in results if r["success"]]
        if scored:
            revalidate_paths("/")

        duration = elapsed_ms(start_time)
        alerting_service.complete_execution(
            execution_id,
            STATUS_SUCCESS,
            metrics={
                "rounds_detected": len(round_ids),
                "rounds_scored": len(scored),
                "duration_ms": duration,
            },
            duration_ms=duration,
        )

        message = (
            f"Processed {len(round_ids)} rounds."
            if round_ids
            else "No completed rounds found to process."
        )
        logger.info(f"Round processing finished in {duration}ms: {message}")
        return (
            {
                "success": True,
                "message": message,
                "rounds_detected": len(round_ids),
                "rounds_scored": len(scored),
                "rounds_failed": len(results) - len(scored),
                "results": results,
                "detection_errors": detection_errors,
                "duration_ms": duration,
                "timestamp": _timestamp(),
            },
            200,
        )

    except Exception as e:
        return _failure(
            JOB_PROCESS_ROUNDS, execution_id, start_time, "Round processing failed", e
        )


def _winner_summary(result, competition_type):
    return {
        "seasonId": result["season_id"],
        "competitionType": competition_type,
        "winnersCount": len(result["winners"]),
        "totalPlayers": result["total_players"],
        "isAlreadyDetermined": result["is_season_already_determined"],
        "hasErrors": bool(result["errors"]),
    }


def _determine_all_winners():
    """League then cup winners for every eligible season

    Returns (results as (competition_type, result) pairs, error messages).
    """
    results = []
    errors = []
    for service in (WinnerDeterminationService(), CupWinnerDeterminationService()):
        try:
            for result in service.determine_winners_for_completed_seasons():
                results.append((service.competition_type, result))
                errors.extend(error_messages(result["errors"]))
        except Exception as e:
            logger.error(
                f"{service.competition_type} winner determination failed: {e}", exc_info=True
            )
            errors.append(str(e))
    return results, errors


def run_season_completion():
    """Mark finished seasons complete, record winners, trigger summary emails"""
    start_time = time.monotonic()
    execution_id = alerting_service.start_execution(JOB_SEASON_COMPLETION)
    logger.info("Starting season completion cron job")

    try:
        detection = SeasonCompletionDetector().detect_and_mark_completed_seasons()
        completed_ids = detection["completed_season_ids"]
        detection_errors = error_messages(detection["errors"])

        winner_results = []
        winner_errors = []
        if completed_ids:
            logger.info(f"{len(completed_ids)} seasons completed, determining winners")
            winner_results, winner_errors = _determine_all_winners()

        total_winners = sum(len(result["winners"]) for _, result in winner_results)

        email = {"attempted": False, "success": False, "total_sent": 0, "errors": []}
        if completed_ids:
            email = trigger_summary_emails(completed_ids)
            if revalidate_paths("/", "/standings"):
                logger.warning("Cache revalidation after season completion was incomplete")

        duration = elapsed_ms(start_time)
        has_errors = bool(detection_errors or winner_errors)

        message = (
            f"Season completion check completed. {len(completed_ids)} seasons marked as complete. "
            f"{total_winners} winners determined."
        )
        if email["attempted"]:
            message += f" Enhanced summary emails: {email['total_sent']} sent."

        payload = {
            "success": not has_errors or bool(completed_ids),
            "message": message,
            "duration_ms": duration,
            "total_seasons_checked": detection["processed_count"] + detection["skipped_count"],
            "completed_seasons": len(completed_ids),
            "seasons_in_progress": detection["skipped_count"],
            "season_detection_error_count": len(detection_errors),
            "completed_season_ids": completed_ids,
            "winner_determination_processed": len(winner_results),
            "total_winners_determined": total_winners,
            "winner_determination_error_count": len(winner_errors),
            "enhanced_email_attempted": email["attempted"],
            "enhanced_email_success": email["success"],
            "enhanced_email_total_sent": email["total_sent"],
            "enhanced_email_error_count": len(email["errors"]),
            "timestamp": _timestamp(),
        }
        if detection_errors:
            payload["detailed_season_detection_errors"] = detection_errors
        if winner_errors:
            payload["detailed_winner_determination_errors"] = winner_errors
        if email["errors"]:
            payload["detailed_enhanced_email_errors"] = email["errors"]
        if winner_results:
            payload["winner_determination_results"] = [
                _winner_summary(result, competition_type)
                for competition_type, result in winner_results
            ]

        alerting_service.complete_execution(
            execution_id,
            STATUS_SUCCESS,
            metrics={
                "seasons_checked": payload["total_seasons_checked"],
                "seasons_completed": len(completed_ids),
                "winners_processed": total_winners,
                "duration_ms": duration,
            },
            duration_ms=duration,
        )
        logger.info(f"Season completion cron job finished: {message}")
        return payload, 200

    except Exception as e:
        return _failure(
            JOB_SEASON_COMPLETION,
            execution_id,
            start_time,
            "Season completion detection and winner determination failed",
            e,
        )


def _serialize_winner_result(competition_type, result):
    return {
        "season_id": result["season_id"],
        "competition_type": competition_type,
        "winners": result["winners"],
        "total_players": result["total_players"],
        "is_season_already_determined": result["is_season_already_determined"],
        "errors": error_messages(result["errors"]),
    }


def run_winner_determination():
    """Record winners for completed seasons that have none yet"""
    start_time = time.monotonic()
    execution_id = alerting_service.start_execution(JOB_WINNER_DETERMINATION)
    logger.info("Starting winner determination cron job")

    try:
        results = []
        for service in (WinnerDeterminationService(), CupWinnerDeterminationService()):
            results.extend(
                (service.competition_type, result)
                for result in service.determine_winners_for_completed_seasons()
            )
    except Exception as e:
        return _failure(
            JOB_WINNER_DETERMINATION, execution_id, start_time, "Winner determination failed", e
        )

    errors = [
        message for _, result in results for message in error_messages(result["errors"])
    ]
    newly_determined = sum(
        1
        for _, result in results
        if not result["is_season_already_determined"] and result["winners"]
    )

    if newly_determined:
        revalidate_paths("/standings")
        logger.info(f"Winners determined for {newly_determined} season results")
    else:
        logger.info(f"No new winners to determine ({len(results)} results checked)")

    duration = elapsed_ms(start_time)
    payload = {
        "success": not errors or newly_determined > 0,
        "message": f"Winner determination check completed. {newly_determined} winners determined.",
        "timestamp": _timestamp(),
        "duration_ms": duration,
        "total_seasons_processed": len(results),
        "total_winners_determined": newly_determined,
        "error_count": len(errors),
        "winner_determination_results": [
            _serialize_winner_result(competition_type, result)
            for competition_type, result in results
        ],
    }
    if errors:
        payload["detailed_errors"] = errors
        logger.warning(f"Winner determination finished with {len(errors)} errors")

    alerting_service.complete_execution(
        execution_id,
        STATUS_SUCCESS,
        metrics={
            "seasons_processed": len(results),
            "winners_processed": newly_determined,
            "error_count": len(errors),
            "duration_ms": duration,
        },
        duration_ms=duration,
    )
    return payload, 200


def cup_metrics(result, duration):
    """Flat numeric metrics for monitoring dashboards"""
    fixture_data = result.get("fixture_data") or {}
    condition = result.get("condition") or {}
    status = result.get("status") or {}
    return {
        "duration": duration,
        "teams_total": fixture_data.get("total_teams", 0),
        "teams_with_five_or_fewer": fixture_data.get("teams_with_five_or_fewer_games", 0),
        "activation_percentage": condition.get("percentage_with_five_or_fewer_games", 0),
        "threshold_met": 1 if condition.get("condition_met") else 0,
        "cup_activated": 1 if result.get("action_taken") == ACTION_ACTIVATED else 0,
        "was_already_activated": 1 if status.get("is_activated") else 0,
    }


def run_cup_activation(threshold=None):
    """Run the cup activation decision once"""
    start_time = time.monotonic()
    execution_id = alerting_service.start_execution(JOB_CUP_ACTIVATION)
    logger.info(f"Starting cup activation cron job ({execution_id})")

    try:
        service = CupActivationDetectionService(threshold=threshold, session_id=execution_id)
        result = service.detect_and_activate()
    except Exception as e:
        return _failure(
            JOB_CUP_ACTIVATION, execution_id, start_time, "Critical error in cup activation cron job", e
        )

    duration = elapsed_ms(start_time)
    metrics = cup_metrics(result, duration)
    data = {
        "should_activate": result["should_activate"],
        "action_taken": result["action_taken"],
        "summary": result["summary"],
        "reasoning": result["reasoning"],
        "season_id": result["season_id"],
        "season_name": result["season_name"],
    }

    if result["success"]:
        alerting_service.complete_execution(
            execution_id, STATUS_SUCCESS, metrics=metrics, duration_ms=duration
        )
        logger.info(f"Cup activation detection completed: {result['summary']}")
        return (
            {
                "success": True,
                "message": "Cup activation detection completed successfully",
                "data": data,
                "metrics": metrics,
                "execution_id": execution_id,
                "duration_ms": duration,
                "timestamp": _timestamp(),
            },
            200,
        )

    error = result.get("error") or result["action_taken"]
    alerting_service.complete_execution(
        execution_id, STATUS_FAILURE, error, metrics, duration_ms=duration
    )
    logger.error(f"Cup activation detection failed: {error}")
    return (
        {
            "success": False,
            "message": "Cup activation detection failed",
            "error": error,
            "details": {
                "errors": error_messages(result["errors"]),
                "summary": result["summary"],
                "data": data,
            },
            "metrics": metrics,
            "execution_id": execution_id,
            "duration_ms": duration,
            "timestamp": _timestamp(),
        },
        500,
    )


JOBS = {
    JOB_PROCESS_ROUNDS: run_process_rounds,
    JOB_SEASON_COMPLETION: run_season_completion,
    JOB_WINNER_DETERMINATION: run_winner_determination,
    JOB_CUP_ACTIVATION: run_cup_activation,
}
