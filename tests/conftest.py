"""
Shared fixtures: an app on an in-memory database per test and a small
factory for seasons, fixtures, rounds and bets.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from app import create_app, db
from app.models import (
    BettingRound,
    Competition,
    Fixture,
    Profile,
    Season,
    Team,
    UserBet,
    UserLastRoundSpecialPoints,
    UserRoundDynamicPoints,
)
from app.utils.cron_alerts import alerting_service

CRON_SECRET = "test-cron-secret"


@pytest.fixture
def app():
    """Fresh app and empty schema for every test."""
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def reset_alerting():
    alerting_service.reset()
    yield
    alerting_service.reset()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}


class Factory:
    """Builds committed rows with sensible defaults"""

    def __init__(self):
        self._seq = itertools.count(1)

    def _next(self):
        return next(self._seq)

    def commit(self, *objs):
        db.session.add_all(objs)
        db.session.commit()
        return objs[0] if len(objs) == 1 else objs

    def competition(self, name="Eliteserien"):
        return self.commit(Competition(name=name, country_name="Norway"))

    def season(self, name=None, is_current=True, **kwargs):
        return self.commit(
            Season(name=name or f"Season {self._next()}", is_current=is_current, **kwargs)
        )

    def team(self, name=None):
        return self.commit(Team(name=name or f"Team {self._next()}"))

    def teams(self, count):
        return [self.team() for _ in range(count)]

    def fixture(self, season, home=None, away=None, status="FT", result="1", kickoff=None):
        """A played fixture by default; pass status='NS', result=None for an upcoming one"""
        home = home or self.team()
        away = away or self.team()
        if kickoff is None:
            offset = timedelta(days=-3) if status != "NS" else timedelta(days=3)
            kickoff = datetime.now(timezone.utc) + offset
        return self.commit(
            Fixture(
                season_id=season.id,
                home_team_id=home.id,
                away_team_id=away.id,
                kickoff=kickoff,
                status_short=status,
                result=result,
            )
        )

    def upcoming_fixture(self, season, home=None, away=None):
        return self.fixture(season, home, away, status="NS", result=None)

    def betting_round(self, season, fixtures=(), **kwargs):
        betting_round = BettingRound(
            season_id=season.id if season else None,
            name=kwargs.pop("name", f"Round {self._next()}"),
            **kwargs,
        )
        betting_round.fixtures = list(fixtures)
        return self.commit(betting_round)

    def profile(self, full_name=None):
        return self.commit(Profile(full_name=full_name or f"Player {self._next()}"))

    def bet(self, user, fixture, betting_round, prediction, points_awarded=None):
        return self.commit(
            UserBet(
                user_id=user.id,
                fixture_id=fixture.id,
                betting_round_id=betting_round.id,
                prediction=prediction,
                points_awarded=points_awarded,
            )
        )

    def dynamic_points(self, betting_round, points_by_user):
        UserRoundDynamicPoints.upsert_for_round(
            betting_round.id,
            [
                {"user_id": user.id, "total_points": points}
                for user, points in points_by_user.items()
            ],
        )
        db.session.commit()

    def cup_points(self, user, betting_round, season, points):
        return self.commit(
            UserLastRoundSpecialPoints(
                user_id=user.id,
                betting_round_id=betting_round.id,
                season_id=season.id,
                points=points,
            )
        )


@pytest.fixture
def factory(app):
    return Factory()
