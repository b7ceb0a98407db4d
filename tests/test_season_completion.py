"""
Tests for season completion detection.
"""

from app import db
from app.models import Season
from app.models.betting_round import ROUND_OPEN, ROUND_SCORED, ROUND_SCORING
from app.services.season_completion_detector import SeasonCompletionDetector


def test_season_with_all_final_fixtures_is_completed(factory):
    season = factory.season()
    factory.fixture(season, status="FT")
    factory.fixture(season, status="AWD")
    factory.fixture(season, status="WO", result="2")

    result = SeasonCompletionDetector().detect_and_mark_completed_seasons()

    assert result["completed_season_ids"] == [season.id]
    assert result["processed_count"] == 1
    assert result["skipped_count"] == 0
    assert db.session.get(Season, season.id).completed_at is not None


def test_season_waits_for_unscored_rounds(factory):
    season = factory.season()
    fixture = factory.fixture(season)
    factory.betting_round(season, [fixture], status=ROUND_SCORED)
    factory.betting_round(season, [fixture], status=ROUND_OPEN)
    factory.betting_round(season, [fixture], status=ROUND_SCORING)

    result = SeasonCompletionDetector().detect_and_mark_completed_seasons()

    assert result["completed_season_ids"] == []
    assert result["skipped_count"] == 1
    assert db.session.get(Season, season.id).completed_at is None


def test_season_with_all_rounds_scored_is_completed(factory):
    season = factory.season()
    fixture = factory.fixture(season)
    factory.betting_round(season, [fixture], status=ROUND_SCORED)

    result = SeasonCompletionDetector().detect_and_mark_completed_seasons()

    assert result["completed_season_ids"] == [season.id]


def test_season_in_progress_is_skipped(factory):
    season = factory.season()
    factory.fixture(season)
    factory.upcoming_fixture(season)
    factory.fixture(season, status="PST", result=None)

    result = SeasonCompletionDetector().detect_and_mark_completed_seasons()

    assert result["completed_season_ids"] == []
    assert result["skipped_count"] == 1
    assert db.session.get(Season, season.id).completed_at is None


def test_season_without_fixtures_is_never_completed(factory):
    season = factory.season()

    result = SeasonCompletionDetector().detect_and_mark_completed_seasons()

    assert result["completed_season_ids"] == []
    assert db.session.get(Season, season.id).completed_at is None


def test_only_current_seasons_are_checked(factory):
    other = factory.season(is_current=False)
    factory.fixture(other)

    result = SeasonCompletionDetector().detect_and_mark_completed_seasons()

    assert result["completed_season_ids"] == []
    assert result["processed_count"] == 0
    assert result["skipped_count"] == 0


def test_completed_season_is_not_stamped_twice(factory):
    season = factory.season()
    factory.fixture(season)
    detector = SeasonCompletionDetector()

    detector.detect_and_mark_completed_seasons()
    stamped_at = db.session.get(Season, season.id).completed_at
    second = detector.detect_and_mark_completed_seasons()

    assert second["completed_season_ids"] == []
    assert db.session.get(Season, season.id).completed_at == stamped_at


def test_completion_stats(factory):
    season = factory.season()
    factory.fixture(season)
    factory.fixture(season, status="AWD")
    factory.upcoming_fixture(season)
    factory.upcoming_fixture(season)

    stats = SeasonCompletionDetector().get_season_completion_stats(season.id)

    assert stats["total_fixtures"] == 4
    assert stats["finished_fixtures"] == 2
    assert stats["remaining_fixtures"] == 2
    assert stats["completion_percentage"] == 50.0
    assert stats["is_complete"] is False
    assert stats["errors"] == []


def test_completion_stats_for_unknown_season(app):
    stats = SeasonCompletionDetector().get_season_completion_stats(42)

    assert stats["errors"][0].kind == "not_found"
