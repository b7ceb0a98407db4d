"""
Tests for cup (Last Round Special) activation detection.
"""

import pytest

from app import db
from app.models import CupActivationLog, Season
from app.services.cup import (
    ActivationConditionCalculator,
    CupActivationDetectionService,
    FixtureDataService,
    IdempotentActivationService,
)
from app.services.cup.activation_detection_service import (
    ACTION_ACTIVATED,
    ACTION_ACTIVATED_ELSEWHERE,
    ACTION_ALREADY_ACTIVE,
    ACTION_CONDITIONS_NOT_MET,
    ACTION_ERROR,
)
from app.utils.errors import ValidationError


def _season_near_end(factory, finished_teams, busy_pairs, **season_kwargs):
    """Teams with no games left plus pairs of teams with six games left each"""
    season = factory.season(**season_kwargs)
    done = factory.teams(finished_teams)
    for home, away in zip(done, done[1:] + done[:1]):
        factory.fixture(season, home, away)
    for _ in range(busy_pairs):
        home, away = factory.team(), factory.team()
        for _ in range(6):
            factory.upcoming_fixture(season, home, away)
    return season


class TestConditionCalculator:
    def test_threshold_reached(self):
        condition = ActivationConditionCalculator(60).calculate(
            {
                "total_teams": 5,
                "teams_with_five_or_fewer_games": 3,
                "percentage_with_five_or_fewer_games": 60.0,
            }
        )

        assert condition["condition_met"] is True
        assert condition["reasoning"] == (
            "3/5 teams (60.0%) have ≤5 games remaining, which meets the 60% "
            "threshold for cup activation"
        )

    def test_threshold_missed(self):
        condition = ActivationConditionCalculator().calculate(
            {
                "total_teams": 9,
                "teams_with_five_or_fewer_games": 5,
                "percentage_with_five_or_fewer_games": 5 / 9 * 100,
            }
        )

        assert condition["condition_met"] is False
        assert "does not meet" in condition["reasoning"]

    def test_no_teams(self):
        condition = ActivationConditionCalculator().calculate({"total_teams": 0})

        assert condition["condition_met"] is False
        assert condition["reasoning"] == "No teams found in the season"

    @pytest.mark.parametrize("threshold", [-1, 100.5, "sixty", None, True])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(ValidationError):
            ActivationConditionCalculator(threshold)

    def test_missing_fixture_data(self):
        with pytest.raises(ValidationError):
            ActivationConditionCalculator().calculate(None)


def test_fixture_data_counts_remaining_games(factory):
    season = _season_near_end(factory, finished_teams=3, busy_pairs=1)

    data = FixtureDataService().get_fixture_data(season.id)

    assert data["total_teams"] == 5
    assert data["teams_with_five_or_fewer_games"] == 3
    assert data["percentage_with_five_or_fewer_games"] == 60.0
    assert sorted(team["remaining_games"] for team in data["teams"]) == [0, 0, 0, 6, 6]


def test_activates_when_threshold_met(factory):
    season = _season_near_end(factory, finished_teams=3, busy_pairs=1)

    result = CupActivationDetectionService(threshold=60).detect_and_activate()

    assert result["success"] is True
    assert result["should_activate"] is True
    assert result["action_taken"] == ACTION_ACTIVATED
    assert result["reasoning"].startswith("Conditions were met and cup was successfully activated on ")
    assert "Teams with ≤5 games: 3/5 (60.0%)" in result["summary"]

    season = db.session.get(Season, season.id)
    assert season.last_round_special_activated is True
    assert season.last_round_special_activated_at is not None


def test_no_activation_below_threshold(factory):
    season = _season_near_end(factory, finished_teams=5, busy_pairs=2)

    result = CupActivationDetectionService(threshold=60).detect_and_activate()

    assert result["success"] is True
    assert result["should_activate"] is False
    assert result["action_taken"] == ACTION_CONDITIONS_NOT_MET
    assert result["reasoning"].startswith("5/9 teams (55.6%)")
    assert db.session.get(Season, season.id).last_round_special_activated is False


def test_repeated_runs_activate_once(factory):
    season = _season_near_end(factory, finished_teams=3, busy_pairs=1)

    first = CupActivationDetectionService(threshold=60).detect_and_activate()
    activated_at = db.session.get(Season, season.id).last_round_special_activated_at
    second = CupActivationDetectionService(threshold=60).detect_and_activate()

    assert first["action_taken"] == ACTION_ACTIVATED
    assert second["action_taken"] == ACTION_ALREADY_ACTIVE
    assert second["should_activate"] is False
    assert second["success"] is True
    assert second["reasoning"].startswith("Cup was already activated on ")
    assert db.session.get(Season, season.id).last_round_special_activated_at == activated_at
    assert CupActivationLog.query.count() == 2


def test_concurrent_activation_counts_as_success(factory):
    _season_near_end(factory, finished_teams=3, busy_pairs=1)

    class AlreadyActivated(IdempotentActivationService):
        def activate_cup(self, season_id):
            return self._result(season_id, was_already_activated=True)

    result = CupActivationDetectionService(
        threshold=60, activation_service=AlreadyActivated()
    ).detect_and_activate()

    assert result["success"] is True
    assert result["action_taken"] == ACTION_ACTIVATED_ELSEWHERE


def test_failed_activation_is_reported(factory):
    _season_near_end(factory, finished_teams=3, busy_pairs=1)

    class Failing(IdempotentActivationService):
        def activate_cup(self, season_id):
            return self._result(season_id, success=False, error="database locked")

    result = CupActivationDetectionService(
        threshold=60, activation_service=Failing()
    ).detect_and_activate()

    assert result["success"] is False
    assert result["action_taken"] == "Activation failed: database locked"
    assert result["errors"]


def test_unexpected_error_is_captured_and_audited(factory):
    factory.season()

    class BrokenFixtureData(FixtureDataService):
        def get_fixture_data(self, season_id=None, now=None):
            raise RuntimeError("provider down")

    result = CupActivationDetectionService(
        fixture_data_service=BrokenFixtureData()
    ).detect_and_activate()

    assert result["success"] is False
    assert result["action_taken"] == ACTION_ERROR
    assert result["reasoning"] == "Process failed: provider down"
    log = CupActivationLog.query.one()
    assert log.action_taken == ACTION_ERROR
    assert log.errors[0]["kind"] == "unexpected"


def test_no_current_season(app):
    result = CupActivationDetectionService().detect_and_activate()

    assert result["success"] is True
    assert result["action_taken"] == ACTION_CONDITIONS_NOT_MET
    assert result["reasoning"] == "No teams found in the season"


def test_invalid_configured_threshold(app):
    with pytest.raises(ValidationError):
        CupActivationDetectionService(threshold=150)


def test_idempotent_activation_service(factory):
    season = factory.season()
    service = IdempotentActivationService()

    first = service.activate_cup(season.id)
    second = service.activate_cup(season.id)
    missing = service.activate_cup(9999)

    assert first["success"] is True
    assert first["was_already_activated"] is False
    assert second["was_already_activated"] is True
    assert second["activated_at"] == first["activated_at"]
    assert missing["success"] is False
    assert missing["error"] == "Season 9999 not found"
