"""
Tests for the match scoring engine.
"""

from types import SimpleNamespace

from app import db
from app.models import BettingRound, UserBet
from app.models.betting_round import ROUND_SCORED, ROUND_SCORING
from app.services.scoring_service import (
    ScoringConfig,
    calculate_and_store_match_points,
    calculate_bet_points,
    find_perfect_round_users,
    get_user_points_up_to_round,
)


def _bet(user_id, fixture_id, prediction):
    return SimpleNamespace(user_id=user_id, fixture_id=fixture_id, prediction=prediction)


class TestBetPoints:
    def test_correct_and_wrong(self):
        config = ScoringConfig()
        assert calculate_bet_points("1", "1", config) == 1
        assert calculate_bet_points("X", "1", config) == 0

    def test_bonus_round_doubles(self):
        assert calculate_bet_points("2", "2", ScoringConfig(is_bonus_round=True)) == 2

    def test_global_bonus_doubles(self):
        assert calculate_bet_points("X", "X", ScoringConfig(global_bonus_active=True)) == 2

    def test_perfect_round_doubles(self):
        assert calculate_bet_points("1", "1", ScoringConfig(), is_perfect_round=True) == 2

    def test_bonuses_never_stack(self):
        config = ScoringConfig(is_bonus_round=True, global_bonus_active=True)
        assert calculate_bet_points("1", "1", config, is_perfect_round=True) == 2

    def test_wrong_bet_stays_zero_under_bonus(self):
        assert calculate_bet_points("1", "2", ScoringConfig(is_bonus_round=True)) == 0


class TestPerfectRoundUsers:
    def test_only_own_bets_count(self):
        """A user who bet on a subset of fixtures can still be perfect."""
        results = {1: "1", 2: "X", 3: "2"}
        bets = [
            _bet("a", 1, "1"),
            _bet("a", 2, "X"),
            _bet("b", 1, "1"),
            _bet("b", 2, "1"),
            _bet("c", 3, "2"),
        ]
        assert find_perfect_round_users(bets, results) == {"a", "c"}

    def test_unsettled_fixture_leaves_user_out(self):
        bets = [_bet("a", 1, "1"), _bet("a", 2, "X")]
        assert find_perfect_round_users(bets, {1: "1"}) == set()

    def test_no_bets(self):
        assert find_perfect_round_users([], {1: "1"}) == set()


def _round_with_fixtures(factory, results, **round_kwargs):
    season = factory.season(bonus_mode_active=round_kwargs.pop("bonus_mode_active", False))
    fixtures = [factory.fixture(season, result=result) for result in results]
    betting_round = factory.betting_round(season, fixtures, **round_kwargs)
    return season, fixtures, betting_round


def _points(user):
    return {
        bet.fixture_id: bet.points_awarded
        for bet in UserBet.query.filter_by(user_id=user.id).all()
    }


def test_regular_round_scoring(factory):
    """One point per correct bet, perfect users doubled."""
    _, fixtures, betting_round = _round_with_fixtures(factory, ["1", "X"])
    perfect, mixed = factory.profile("Perfect"), factory.profile("Mixed")
    factory.bet(perfect, fixtures[0], betting_round, "1")
    factory.bet(perfect, fixtures[1], betting_round, "X")
    factory.bet(mixed, fixtures[0], betting_round, "1")
    factory.bet(mixed, fixtures[1], betting_round, "2")

    result = calculate_and_store_match_points(betting_round.id)

    assert result["success"] is True
    assert result["bets_processed"] == 4
    assert result["bets_updated"] == 4
    assert result["errors"] == []
    assert _points(perfect) == {fixtures[0].id: 2, fixtures[1].id: 2}
    assert _points(mixed) == {fixtures[0].id: 1, fixtures[1].id: 0}

    betting_round = db.session.get(BettingRound, betting_round.id)
    assert betting_round.status == ROUND_SCORED
    assert betting_round.scored_at is not None


def test_bonus_round_does_not_stack_with_perfect_round(factory):
    _, fixtures, betting_round = _round_with_fixtures(factory, ["1", "2"], is_bonus_round=True)
    user = factory.profile()
    factory.bet(user, fixtures[0], betting_round, "1")
    factory.bet(user, fixtures[1], betting_round, "2")

    calculate_and_store_match_points(betting_round.id)

    assert sorted(_points(user).values()) == [2, 2]


def test_global_bonus_mode_doubles_points(factory):
    _, fixtures, betting_round = _round_with_fixtures(
        factory, ["1", "X"], bonus_mode_active=True
    )
    user = factory.profile()
    factory.bet(user, fixtures[0], betting_round, "1")
    factory.bet(user, fixtures[1], betting_round, "1")

    calculate_and_store_match_points(betting_round.id)

    assert _points(user) == {fixtures[0].id: 2, fixtures[1].id: 0}


def test_partial_participation_keeps_perfect_round(factory):
    """Betting on one of three fixtures and getting it right doubles the point."""
    _, fixtures, betting_round = _round_with_fixtures(factory, ["1", "X", "2"])
    user = factory.profile()
    factory.bet(user, fixtures[1], betting_round, "X")

    calculate_and_store_match_points(betting_round.id)

    assert _points(user) == {fixtures[1].id: 2}


def test_scoring_is_idempotent(factory):
    _, fixtures, betting_round = _round_with_fixtures(factory, ["1"])
    user = factory.profile()
    factory.bet(user, fixtures[0], betting_round, "1")

    first = calculate_and_store_match_points(betting_round.id)
    second = calculate_and_store_match_points(betting_round.id)

    assert first["bets_updated"] == 1
    assert second["success"] is True
    assert second["bets_updated"] == 0
    assert "already scored" in second["message"]
    assert _points(user) == {fixtures[0].id: 2}


def test_already_awarded_bets_are_untouched(factory):
    _, fixtures, betting_round = _round_with_fixtures(factory, ["1", "X"])
    user = factory.profile()
    factory.bet(user, fixtures[0], betting_round, "1", points_awarded=5)
    factory.bet(user, fixtures[1], betting_round, "X")

    result = calculate_and_store_match_points(betting_round.id)

    assert result["bets_processed"] == 1
    assert _points(user)[fixtures[0].id] == 5
    assert _points(user)[fixtures[1].id] == 2


def test_missing_result_skips_fixture_and_keeps_round_in_scoring(factory):
    season = factory.season()
    settled = factory.fixture(season, result="1")
    unsettled = factory.fixture(season, status="FT", result=None)
    betting_round = factory.betting_round(season, [settled, unsettled], status=ROUND_SCORING)
    waiting, done = factory.profile("Waiting"), factory.profile("Done")
    factory.bet(waiting, settled, betting_round, "1")
    factory.bet(waiting, unsettled, betting_round, "1")
    factory.bet(done, settled, betting_round, "2")

    result = calculate_and_store_match_points(betting_round.id)

    assert result["success"] is True
    assert result["scoring_incomplete"] is True
    assert result["skipped_fixture_ids"] == [unsettled.id]
    # Perfect-round status of "Waiting" is undecided, so nothing is written yet
    assert _points(waiting) == {settled.id: None, unsettled.id: None}
    assert _points(done) == {settled.id: 0}
    assert db.session.get(BettingRound, betting_round.id).status == ROUND_SCORING


def test_round_without_fixtures_is_marked_scored(factory):
    season = factory.season()
    betting_round = factory.betting_round(season)

    result = calculate_and_store_match_points(betting_round.id)

    assert result["success"] is True
    assert db.session.get(BettingRound, betting_round.id).status == ROUND_SCORED


def test_unknown_round(app):
    result = calculate_and_store_match_points(999)

    assert result["success"] is False
    assert "not found" in result["message"]
    assert result["errors"][0].kind == "not_found"


def test_points_up_to_round(factory):
    _, fixtures, first = _round_with_fixtures(factory, ["1"])
    user = factory.profile()
    factory.bet(user, fixtures[0], first, "1", points_awarded=2)
    later = factory.betting_round(first.season, [fixtures[0]])
    factory.bet(user, fixtures[0], later, "1", points_awarded=1)

    assert get_user_points_up_to_round(first.id) == {user.id: 2}
    assert get_user_points_up_to_round(later.id) == {user.id: 3}
