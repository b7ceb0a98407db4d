"""Remaining-fixture counts per team for the current season"""

import logging

from app.models import Fixture, Season, Team
from app.models.fixture import NOT_STARTED_STATUSES
from app.utils.timezone_utils import ensure_utc, get_utc_time

logger = logging.getLogger(__name__)

# A team is "near the end" with this many games or fewer left
FEW_GAMES_REMAINING = 5


def is_remaining(fixture, now):
    """Still to be played: in the future, no result yet, or not started"""
    kickoff = ensure_utc(fixture.kickoff)
    return (
        (kickoff is not None and kickoff > now)
        or fixture.settled_result is None
        or fixture.status_short in NOT_STARTED_STATUSES
    )


def empty_fixture_data(season_id=None):
    return {
        "season_id": season_id,
        "teams": [],
        "total_teams": 0,
        "teams_with_five_or_fewer_games": 0,
        "percentage_with_five_or_fewer_games": 0.0,
    }


class FixtureDataService:
    """Counts remaining games per team. Database errors propagate to the caller."""

    def get_fixture_data(self, season_id=None, now=None):
        """
        Args:
            season_id: season to analyse, defaults to the current season
            now: reference time, defaults to the current UTC time

        Returns:
            dict: season_id, teams [{team_id, team_name, remaining_games}],
            total_teams, teams_with_five_or_fewer_games,
            percentage_with_five_or_fewer_games
        """
        now = ensure_utc(now) or get_utc_time()

        if season_id is None:
            season = Season.get_current_season()
            if season is None:
                logger.warning("No current season found; no fixture data")
                return empty_fixture_data()
            season_id = season.id

        fixtures = Fixture.query.filter_by(season_id=season_id).order_by(Fixture.kickoff).all()
        if not fixtures:
            logger.info(f"Season {season_id} has no fixtures")
            return empty_fixture_data(season_id)

        # Every team that appears in the season starts at zero
        remaining = {}
        for fixture in fixtures:
            remaining.setdefault(fixture.home_team_id, 0)
            remaining.setdefault(fixture.away_team_id, 0)

        remaining_count = 0
        for fixture in fixtures:
            if is_remaining(fixture, now):
                remaining_count += 1
                remaining[fixture.home_team_id] += 1
                remaining[fixture.away_team_id] += 1

        names = {
            team.id: team.name
            for team in Team.query.filter(Team.id.in_(list(remaining))).all()
        }

        teams = sorted(
            (
                {
                    "team_id": team_id,
                    "team_name": names.get(team_id, f"Team {team_id}"),
                    "remaining_games": games,
                }
                for team_id, games in remaining.items()
            ),
            key=lambda team: team["team_name"],
        )

        total_teams = len(teams)
        few_left = sum(1 for team in teams if team["remaining_games"] <= FEW_GAMES_REMAINING)
        percentage = few_left * 100 / total_teams if total_teams else 0.0

        logger.info(
            f"Season {season_id}: {remaining_count} remaining fixtures, "
            f"{few_left}/{total_teams} teams with <=5 games left ({percentage:.1f}%)"
        )

        return {
            "season_id": season_id,
            "teams": teams,
            "total_teams": total_teams,
            "teams_with_five_or_fewer_games": few_left,
            "percentage_with_five_or_fewer_games": percentage,
        }
