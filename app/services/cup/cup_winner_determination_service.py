"""
Cup Winner Determination

Same rules as the league: every rank-1 player wins, existing rows for the
season make the call a no-op. Only the points source and the competition
type differ, and the season is not stamped because the cup winner rows
themselves mark the season as determined.
"""

from sqlalchemy import and_

from app import db
from app.models import Season, SeasonWinner
from app.models.season_winner import COMPETITION_CUP
from app.services.cup.cup_scoring_service import get_cup_standings
from app.services.winner_determination_service import WinnerDeterminationService


class CupWinnerDeterminationService(WinnerDeterminationService):
    competition_type = COMPETITION_CUP

    def _eligible_seasons(self):
        has_cup_winner = (
            db.session.query(SeasonWinner.id)
            .filter(
                and_(
                    SeasonWinner.season_id == Season.id,
                    SeasonWinner.competition_type == COMPETITION_CUP,
                )
            )
            .exists()
        )
        rows = (
            db.session.query(Season.id)
            .filter(
                Season.completed_at.isnot(None),
                Season.last_round_special_activated.is_(True),
                ~has_cup_winner,
            )
            .order_by(Season.completed_at.asc())
            .all()
        )
        return [row.id for row in rows]

    def _score_key(self):
        return "total_points"

    def _load_standings(self, season):
        return get_cup_standings(season.id)

    def _record_winners(self, season, winners):
        for winner in winners:
            SeasonWinner.upsert(
                season.id,
                winner["user_id"],
                self.competition_type,
                league_id=season.competition_id,
                game_points=0,
                dynamic_points=0,
                total_points=winner["total_points"],
            )
        db.session.commit()
