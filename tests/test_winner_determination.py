"""
Tests for league winner determination.
"""

from datetime import datetime, timezone

from app import db
from app.models import Season, SeasonWinner
from app.models.season_winner import COMPETITION_LEAGUE
from app.services.winner_determination_service import (
    WinnerDeterminationService,
    pick_winners,
)


def _completed_season(factory, **kwargs):
    return factory.season(completed_at=datetime.now(timezone.utc), **kwargs)


def _award(factory, season, points_by_name):
    fixture = factory.fixture(season)
    betting_round = factory.betting_round(season, [fixture])
    players = {}
    for name, points in points_by_name.items():
        players[name] = factory.profile(name)
        factory.bet(players[name], fixture, betting_round, "1", points_awarded=points)
    return players


def test_pick_winners_flags_ties():
    standings = [
        {"user_id": "a", "combined_total_score": 9, "rank": 1},
        {"user_id": "b", "combined_total_score": 9, "rank": 1},
        {"user_id": "c", "combined_total_score": 4, "rank": 3},
    ]

    winners = pick_winners(standings)

    assert [w["user_id"] for w in winners] == ["a", "b"]
    assert all(w["is_tied"] for w in winners)
    assert winners[0]["total_points"] == 9


def test_single_winner_is_recorded(factory):
    competition = factory.competition()
    season = _completed_season(factory, competition_id=competition.id)
    players = _award(factory, season, {"Alice": 10, "Bob": 7})

    result = WinnerDeterminationService().determine_season_winners(season.id)

    assert result["errors"] == []
    assert result["total_players"] == 2
    assert result["is_season_already_determined"] is False
    assert [w["user_id"] for w in result["winners"]] == [players["Alice"].id]
    assert result["winners"][0]["is_tied"] is False

    rows = SeasonWinner.get_for_season(season.id, COMPETITION_LEAGUE)
    assert len(rows) == 1
    assert rows[0].total_points == 10
    assert rows[0].game_points == 10
    assert rows[0].league_id == competition.id
    assert db.session.get(Season, season.id).winner_determined_at is not None


def test_tied_winners_all_recorded(factory):
    season = _completed_season(factory)
    _award(factory, season, {"Alice": 8, "Bob": 8, "Carol": 3})

    result = WinnerDeterminationService().determine_season_winners(season.id)

    assert len(result["winners"]) == 2
    assert all(w["is_tied"] for w in result["winners"])
    assert SeasonWinner.query.filter_by(season_id=season.id).count() == 2


def test_repeated_determination_is_a_no_op(factory):
    season = _completed_season(factory)
    _award(factory, season, {"Alice": 5, "Bob": 5})
    service = WinnerDeterminationService()

    first = service.determine_season_winners(season.id)
    second = service.determine_season_winners(season.id)

    assert first["is_season_already_determined"] is False
    assert second["is_season_already_determined"] is True
    assert {w["user_id"] for w in second["winners"]} == {w["user_id"] for w in first["winners"]}
    assert all(w["is_tied"] for w in second["winners"])
    assert SeasonWinner.query.filter_by(season_id=season.id).count() == 2


def test_season_without_players_is_an_error(factory):
    season = _completed_season(factory)

    result = WinnerDeterminationService().determine_season_winners(season.id)

    assert result["winners"] == []
    assert "no players found" in result["errors"][0].message
    assert SeasonWinner.query.count() == 0


def test_unknown_season(app):
    result = WinnerDeterminationService().determine_season_winners(404)

    assert result["errors"][0].kind == "not_found"


def test_batch_only_processes_eligible_seasons(factory):
    done = _completed_season(factory)
    _award(factory, done, {"Alice": 1})
    running = factory.season()
    _award(factory, running, {"Bob": 9})

    results = WinnerDeterminationService().determine_winners_for_completed_seasons()

    assert [r["season_id"] for r in results] == [done.id]
    assert WinnerDeterminationService().determine_winners_for_completed_seasons() == []


def test_batch_isolates_failing_season(factory, monkeypatch):
    broken = _completed_season(factory, is_current=False)
    _award(factory, broken, {"Alice": 4})
    healthy = _completed_season(factory)
    players = _award(factory, healthy, {"Bob": 6})

    service = WinnerDeterminationService()
    original = service._load_standings

    def load_standings(season):
        if season.id == broken.id:
            raise RuntimeError("standings exploded")
        return original(season)

    monkeypatch.setattr(service, "_load_standings", load_standings)

    results = {r["season_id"]: r for r in service.determine_winners_for_completed_seasons()}

    assert "standings exploded" in results[broken.id]["errors"][0].message
    assert results[broken.id]["winners"] == []
    assert results[healthy.id]["errors"] == []
    assert results[healthy.id]["winners"][0]["user_id"] == players["Bob"].id
    assert db.session.get(Season, broken.id).winner_determined_at is None
