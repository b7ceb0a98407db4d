"""
Tests for the standings calculator.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from app.models.betting_round import ROUND_SCORED
from app.services import standings_service
from app.services.standings_service import assign_ranks, calculate_standings


def _scored_round(factory, season, fixture, scored_at):
    return factory.betting_round(
        season, [fixture], status=ROUND_SCORED, scored_at=scored_at
    )


class TestAssignRanks:
    def test_competition_ranking(self):
        entries = [{"combined_total_score": score} for score in (10, 8, 8, 5)]
        assert [e["rank"] for e in assign_ranks(entries)] == [1, 2, 2, 4]

    def test_tie_at_the_top(self):
        entries = [{"total_points": score} for score in (7, 7, 7)]
        assert [e["rank"] for e in assign_ranks(entries, "total_points")] == [1, 1, 1]

    def test_empty(self):
        assert assign_ranks([]) == []


def test_combines_game_and_latest_dynamic_points(factory):
    season = factory.season()
    fixture = factory.fixture(season)
    now = datetime.now(timezone.utc)
    older = _scored_round(factory, season, fixture, now - timedelta(days=7))
    latest = _scored_round(factory, season, fixture, now - timedelta(days=1))
    alice, bob, carol = factory.profile("Alice"), factory.profile("Bob"), factory.profile("Carol")

    factory.bet(alice, fixture, older, "1", points_awarded=4)
    factory.bet(bob, fixture, older, "1", points_awarded=2)
    factory.bet(carol, fixture, latest, "2")
    factory.dynamic_points(older, {alice: 9, bob: 9})
    factory.dynamic_points(latest, {bob: 3, alice: 1})

    standings = calculate_standings()

    by_user = {entry["username"]: entry for entry in standings}
    assert by_user["Alice"]["game_points"] == 4
    assert by_user["Alice"]["dynamic_points"] == 1
    assert by_user["Alice"]["combined_total_score"] == 5
    assert by_user["Bob"]["combined_total_score"] == 5
    assert by_user["Carol"]["combined_total_score"] == 0
    assert [entry["rank"] for entry in standings] == [1, 1, 3]


def test_ranks_are_monotonic(factory):
    season = factory.season()
    fixture = factory.fixture(season)
    betting_round = factory.betting_round(season, [fixture])
    for points in (3, 1, 3, 0, 2):
        factory.bet(factory.profile(), fixture, betting_round, "1", points_awarded=points)

    standings = calculate_standings()

    scores = [entry["combined_total_score"] for entry in standings]
    assert scores == sorted(scores, reverse=True)
    for previous, current in zip(standings, standings[1:]):
        assert current["rank"] >= previous["rank"]
        if current["combined_total_score"] == previous["combined_total_score"]:
            assert current["rank"] == previous["rank"]
    assert [entry["rank"] for entry in standings] == [1, 1, 3, 4, 5]


def test_season_scope(factory):
    old_season = factory.season(is_current=False)
    new_season = factory.season()
    old_fixture, new_fixture = factory.fixture(old_season), factory.fixture(new_season)
    old_round = factory.betting_round(old_season, [old_fixture])
    new_round = factory.betting_round(new_season, [new_fixture])
    user = factory.profile()
    factory.bet(user, old_fixture, old_round, "1", points_awarded=6)
    factory.bet(user, new_fixture, new_round, "1", points_awarded=1)

    assert calculate_standings()[0]["game_points"] == 7
    assert calculate_standings(season_id=new_season.id)[0]["game_points"] == 1


def test_no_scored_round_means_no_dynamic_points(factory):
    season = factory.season()
    fixture = factory.fixture(season)
    betting_round = factory.betting_round(season, [fixture])
    user = factory.profile()
    factory.bet(user, fixture, betting_round, "1")
    factory.dynamic_points(betting_round, {user: 5})

    standings = calculate_standings()

    assert standings[0]["game_points"] == 0
    assert standings[0]["dynamic_points"] == 0


def test_empty_league(app):
    assert calculate_standings() == []


def test_returns_none_when_points_source_fails(app, monkeypatch):
    def broken(season_id=None):
        raise OperationalError("SELECT", {}, Exception("database is gone"))

    monkeypatch.setattr(standings_service, "get_latest_scored_round", broken)

    assert calculate_standings() is None
