"""
Tests for the /cron endpoints.
"""

from datetime import datetime, timezone

import pytest
import requests

from app import db
from app.models import BettingRound, Season, SeasonWinner
from app.models.betting_round import ROUND_SCORED
from app.services import summary_email_service
from app.utils.cron_alerts import alerting_service

CRON_PATHS = (
    "/cron/process-rounds",
    "/cron/season-completion",
    "/cron/winner-determination",
    "/cron/cup-activation",
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


@pytest.fixture
def summary_posts(monkeypatch):
    """Record summary email requests and answer with a successful send"""
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None, **kwargs):
        calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return FakeResponse(body={"success": True, "email_stats": {"total_sent": 3}})

    monkeypatch.setattr(summary_email_service.requests, "post", fake_post)
    return calls


def _finished_season_with_bets(factory, **season_kwargs):
    season = factory.season(**season_kwargs)
    fixture = factory.fixture(season, result="1")
    betting_round = factory.betting_round(season, [fixture])
    winner, loser = factory.profile("Winner"), factory.profile("Loser")
    factory.bet(winner, fixture, betting_round, "1")
    factory.bet(loser, fixture, betting_round, "2")
    return season, betting_round, winner


@pytest.mark.parametrize("path", CRON_PATHS)
def test_requires_secret(client, path):
    response = client.get(path)

    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


@pytest.mark.parametrize("path", CRON_PATHS)
def test_rejects_wrong_secret(client, path):
    response = client.get(path, headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401


def test_missing_server_secret_is_a_configuration_error(app, client, auth_headers):
    app.config["CRON_SECRET"] = None

    response = client.get("/cron/process-rounds", headers=auth_headers)

    assert response.status_code == 500
    assert response.get_json() == {"error": "Server configuration error"}


def test_rejects_non_ascii_secret(client):
    response = client.get("/cron/process-rounds", headers={"X-Cron-Secret": "sécret"})

    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}


def test_accepts_x_cron_secret_header(client):
    response = client.get("/cron/process-rounds", headers={"X-Cron-Secret": "test-cron-secret"})

    assert response.status_code == 200
    assert response.get_json()["message"] == "No completed rounds found to process."


def test_process_rounds_scores_finished_rounds(factory, client, auth_headers):
    _, betting_round, _ = _finished_season_with_bets(factory)

    response = client.get("/cron/process-rounds", headers=auth_headers)

    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["message"] == "Processed 1 rounds."
    assert body["rounds_detected"] == 1
    assert body["rounds_scored"] == 1
    assert body["results"][0]["round_id"] == betting_round.id
    assert body["results"][0]["bets_updated"] == 2
    assert db.session.get(BettingRound, betting_round.id).status == ROUND_SCORED
    assert alerting_service.get_health_summary()["process-rounds"]["status"] == "healthy"


def test_season_completion_determines_winners_and_sends_summary(
    factory, client, auth_headers, summary_posts
):
    season, betting_round, winner = _finished_season_with_bets(factory)
    client.get("/cron/process-rounds", headers=auth_headers)

    response = client.get("/cron/season-completion", headers=auth_headers)

    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["completed_season_ids"] == [season.id]
    assert body["total_winners_determined"] == 1
    assert body["message"] == (
        "Season completion check completed. 1 seasons marked as complete. "
        "1 winners determined. Enhanced summary emails: 3 sent."
    )
    assert body["enhanced_email_attempted"] is True
    assert body["enhanced_email_total_sent"] == 3
    assert body["winner_determination_results"][0]["seasonId"] == season.id
    assert body["winner_determination_results"][0]["competitionType"] == "league"
    assert "detailed_season_detection_errors" not in body

    assert SeasonWinner.query.one().user_id == winner.id
    assert db.session.get(Season, season.id).completed_at is not None

    assert summary_posts[0]["url"] == "http://testserver/api/send-summary"
    assert summary_posts[0]["json"] == {"test_mode": False}
    assert summary_posts[0]["headers"]["X-Cron-Secret"] == "test-cron-secret"


def test_season_completion_survives_email_failure(factory, client, auth_headers, monkeypatch):
    _finished_season_with_bets(factory)
    client.get("/cron/process-rounds", headers=auth_headers)

    def unreachable(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(summary_email_service.requests, "post", unreachable)

    body = client.get("/cron/season-completion", headers=auth_headers).get_json()

    assert body["success"] is True
    assert body["enhanced_email_success"] is False
    assert body["enhanced_email_error_count"] == 1
    assert "connection refused" in body["detailed_enhanced_email_errors"][0]


def test_season_completion_survives_unexpected_email_response(
    factory, client, auth_headers, monkeypatch
):
    season, _, _ = _finished_season_with_bets(factory)
    client.get("/cron/process-rounds", headers=auth_headers)
    monkeypatch.setattr(
        summary_email_service.requests, "post", lambda *args, **kwargs: FakeResponse(body=["queued"])
    )

    response = client.get("/cron/season-completion", headers=auth_headers)

    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["completed_season_ids"] == [season.id]
    assert body["enhanced_email_success"] is False
    assert body["detailed_enhanced_email_errors"] == ["Summary email endpoint returned unexpected JSON"]


def test_season_completion_waits_for_round_scoring(factory, client, auth_headers, summary_posts):
    season, betting_round, _ = _finished_season_with_bets(factory)

    body = client.get("/cron/season-completion", headers=auth_headers).get_json()

    assert body["completed_season_ids"] == []
    assert body["total_winners_determined"] == 0
    assert db.session.get(Season, season.id).completed_at is None
    assert SeasonWinner.query.count() == 0

    client.get("/cron/process-rounds", headers=auth_headers)
    body = client.get("/cron/season-completion", headers=auth_headers).get_json()

    assert body["completed_season_ids"] == [season.id]
    assert SeasonWinner.query.one().user.full_name == "Winner"


def test_season_completion_with_nothing_to_do(factory, client, auth_headers, summary_posts):
    season = factory.season()
    factory.upcoming_fixture(season)

    body = client.get("/cron/season-completion", headers=auth_headers).get_json()

    assert body["completed_seasons"] == 0
    assert body["seasons_in_progress"] == 1
    assert body["enhanced_email_attempted"] is False
    assert summary_posts == []


def test_winner_determination_is_idempotent(factory, client, auth_headers):
    season, _, winner = _finished_season_with_bets(
        factory, completed_at=datetime.now(timezone.utc)
    )
    client.get("/cron/process-rounds", headers=auth_headers)

    first = client.get("/cron/winner-determination", headers=auth_headers).get_json()
    second = client.get("/cron/winner-determination", headers=auth_headers).get_json()

    assert first["total_winners_determined"] == 1
    assert first["message"] == "Winner determination check completed. 1 winners determined."
    assert first["winner_determination_results"][0]["winners"][0]["user_id"] == winner.id
    assert second["total_winners_determined"] == 0
    assert second["total_seasons_processed"] == 0
    assert SeasonWinner.query.filter_by(season_id=season.id).count() == 1


def test_cup_activation_endpoint(factory, client, auth_headers):
    season = factory.season()
    teams = factory.teams(3)
    factory.fixture(season, teams[0], teams[1])
    factory.fixture(season, teams[1], teams[2])

    response = client.get("/cron/cup-activation", headers=auth_headers)

    body = response.get_json()
    assert response.status_code == 200
    assert body["message"] == "Cup activation detection completed successfully"
    assert body["data"]["action_taken"] == "Cup successfully activated"
    assert body["data"]["season_id"] == season.id
    assert body["metrics"]["cup_activated"] == 1
    assert body["metrics"]["teams_total"] == 3
    assert body["execution_id"].startswith("cup-activation-")


def test_cup_activation_with_invalid_threshold(app, client, auth_headers):
    app.config["CUP_ACTIVATION_THRESHOLD"] = 150

    response = client.get("/cron/cup-activation", headers=auth_headers)

    body = response.get_json()
    assert response.status_code == 500
    assert body["success"] is False
    assert body["error"] == "Critical error in cup activation cron job"
    assert alerting_service.get_health_summary()["cup-activation"]["consecutive_failures"] == 1
