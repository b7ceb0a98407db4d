"""
Cup (Last Round Special) activation detection

One run: count remaining games per team, compare the share of teams with
five or fewer games left against the threshold, check whether the cup is
already active, and activate it exactly once. Every run is written to the
cup_activation_logs audit table.

Decision table:
    already active              -> no action
    inactive, condition not met -> no action, reasoning cites percentage
    inactive, condition met     -> activate (a concurrent activation counts
                                   as success)
"""

import time
import uuid

from flask import current_app, has_app_context

from app.services.cup.activation_condition_calculator import (
    DEFAULT_ACTIVATION_THRESHOLD,
    ActivationConditionCalculator,
)
from app.services.cup.activation_logger import CupActivationLogger
from app.services.cup.activation_status_checker import CupActivationStatusChecker
from app.services.cup.fixture_data_service import FixtureDataService
from app.services.cup.idempotent_activation_service import IdempotentActivationService
from app.utils.cache_utils import revalidate_paths
from app.utils.errors import EXTERNAL, normalize_error
from app.utils.performance import elapsed_ms
from app.utils.timezone_utils import get_utc_time

ACTION_ALREADY_ACTIVE = "No action taken - Cup already activated"
ACTION_CONDITIONS_NOT_MET = "No action taken - Activation conditions not met"
ACTION_ACTIVATED = "Cup successfully activated"
ACTION_ACTIVATED_ELSEWHERE = "No action taken - Cup was already activated by another process"
ACTION_ERROR = "Error occurred during processing"

# Views that show cup standings
REVALIDATE_ON_ACTIVATION = ("/standings", "/api/standings")


def configured_threshold():
    if has_app_context():
        return current_app.config.get("CUP_ACTIVATION_THRESHOLD", DEFAULT_ACTIVATION_THRESHOLD)
    return DEFAULT_ACTIVATION_THRESHOLD


class CupActivationDetectionService:
    """Runs the activation decision once per call.

    Collaborators can be injected for tests; the threshold defaults to the
    CUP_ACTIVATION_THRESHOLD setting.
    """

    def __init__(
        self,
        threshold=None,
        session_id=None,
        fixture_data_service=None,
        status_checker=None,
        activation_service=None,
        audit_logger=None,
    ):
        self.threshold = configured_threshold() if threshold is None else threshold
        self.calculator = ActivationConditionCalculator(self.threshold)
        self.session_id = session_id or str(uuid.uuid4())
        self.fixture_data_service = fixture_data_service or FixtureDataService()
        self.status_checker = status_checker or CupActivationStatusChecker()
        self.activation_service = activation_service or IdempotentActivationService()
        self.audit_logger = audit_logger or CupActivationLogger()
        self.log = self.audit_logger.for_session(self.session_id)

    def detect_and_activate(self):
        """
        Returns:
            dict: should_activate, action_taken, success, reasoning, summary,
            fixture_data, condition, status, activation, errors, duration_ms,
            session_id, season_id, season_name, timestamp
        """
        start_time = time.monotonic()
        result = {
            "session_id": self.session_id,
            "should_activate": False,
            "action_taken": ACTION_ERROR,
            "success": False,
            "reasoning": "",
            "summary": "",
            "fixture_data": None,
            "condition": None,
            "status": None,
            "activation": None,
            "errors": [],
            "season_id": None,
            "season_name": None,
            "duration_ms": 0,
            "timestamp": None,
        }
        self.log.info(f"Starting cup activation detection (threshold {self.threshold:g}%)")

        try:
            status = self.status_checker.check_current_season()
            result["status"] = status
            result["season_id"] = status["season_id"]
            result["season_name"] = status["season_name"]

            fixture_data = self.fixture_data_service.get_fixture_data(status["season_id"])
            result["fixture_data"] = fixture_data

            condition = self.calculator.calculate(fixture_data)
            result["condition"] = condition

            result["should_activate"] = condition["condition_met"] and not status["is_activated"]

            if status["is_activated"]:
                result["action_taken"] = ACTION_ALREADY_ACTIVE
                result["success"] = True
                result["reasoning"] = (
                    f"Cup was already activated on {status['activated_at']} "
                    f"for {status['season_name']}"
                )
            elif not condition["condition_met"]:
                result["action_taken"] = ACTION_CONDITIONS_NOT_MET
                result["success"] = True
                result["reasoning"] = condition["reasoning"]
            else:
                self._activate(result, status)

        except Exception as e:
            self.log.error(f"Cup activation detection failed: {e}", exc_info=True)
            result["should_activate"] = False
            result["action_taken"] = ACTION_ERROR
            result["success"] = False
            result["reasoning"] = f"Process failed: {e}"
            result["error"] = str(e)
            result["errors"].append(normalize_error(e, message="Cup activation detection failed"))

        result["summary"] = self._summary(result)
        result["duration_ms"] = elapsed_ms(start_time)
        result["timestamp"] = get_utc_time().isoformat()

        self.audit_logger.create_audit_log(result)
        self.log.info(
            f"Cup activation detection finished in {result['duration_ms']}ms: {result['action_taken']}"
        )
        return result

    def _activate(self, result, status):
        if status["season_id"] is None:
            raise ValueError("No current season to activate the cup for")

        activation = self.activation_service.activate_cup(status["season_id"])
        result["activation"] = activation

        if not activation["success"]:
            result["action_taken"] = f"Activation failed: {activation['error']}"
            result["reasoning"] = f"Conditions were met but activation failed: {activation['error']}"
            result["errors"].append(
                normalize_error(activation["error"], message="Cup activation failed")
            )
            return

        result["success"] = True
        if activation["was_already_activated"]:
            result["action_taken"] = ACTION_ACTIVATED_ELSEWHERE
            result["reasoning"] = (
                "Conditions were met, but cup was already activated by another process"
            )
            return

        result["action_taken"] = ACTION_ACTIVATED
        result["reasoning"] = (
            f"Conditions were met and cup was successfully activated on {activation['activated_at']}"
        )
        self.log.info(f"Cup activated for season {status['season_id']}")

        for path in revalidate_paths(*REVALIDATE_ON_ACTIVATION):
            self.log.warning(f"Could not revalidate {path} after cup activation")
            result["errors"].append(
                normalize_error(f"Failed to revalidate {path}", kind=EXTERNAL)
            )

    def _summary(self, result):
        parts = [f"Action: {result['action_taken']}"]
        if result["season_name"]:
            parts.append(f"Season: {result['season_name']}")
        condition = result["condition"]
        if condition:
            parts.append(
                f"Teams with ≤5 games: {condition['teams_with_five_or_fewer_games']}/"
                f"{condition['total_teams']} ({condition['percentage_with_five_or_fewer_games']:.1f}%)"
            )
            parts.append(f"Threshold: {condition['threshold']:g}%")
        if result["errors"]:
            parts.append(f"Errors: {len(result['errors'])}")
        return " | ".join(parts)
