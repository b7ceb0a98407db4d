"""
Match Scoring Engine

Turns fixture results and user predictions into awarded points for one
betting round. The point rules live in pure functions (calculate_bet_points,
find_perfect_round_users) driven by an explicit ScoringConfig. The database
pass (calculate_and_store_match_points) writes a whole round in a single
transaction.

Rules:
    - correct prediction = 1 point, wrong = 0
    - bonus round or season-wide bonus mode doubles every correct bet
    - otherwise a user whose own bets in the round are all correct gets
      the perfect-round bonus, which also doubles their points
    - the two bonuses never stack
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import BettingRound, UserBet
from app.models.betting_round import ROUND_SCORED, ROUND_SCORING
from app.utils.errors import NOT_FOUND, normalize_error
from app.utils.performance import timer

logger = logging.getLogger(__name__)

BASE_POINTS = 1
BONUS_MULTIPLIER = 2
PERFECT_ROUND_MULTIPLIER = 2


@dataclass(frozen=True)
class ScoringConfig:
    """Bonus switches that apply to one round"""

    is_bonus_round: bool = False
    global_bonus_active: bool = False

    @property
    def bonus_active(self):
        return self.is_bonus_round or self.global_bonus_active

    @classmethod
    def for_round(cls, betting_round):
        season = betting_round.season
        return cls(
            is_bonus_round=bool(betting_round.is_bonus_round),
            global_bonus_active=bool(season and season.bonus_mode_active),
        )


def calculate_bet_points(prediction, result, config, is_perfect_round=False):
    """Points for one bet.

    Args:
        prediction: '1', 'X' or '2'
        result: settled fixture result ('1', 'X' or '2')
        config: ScoringConfig for the round
        is_perfect_round: the bettor got every one of their bets in the round right
    """
    base_points = BASE_POINTS if prediction == result else 0

    if config.bonus_active:
        multiplier = BONUS_MULTIPLIER
    elif is_perfect_round:
        multiplier = PERFECT_ROUND_MULTIPLIER
    else:
        multiplier = 1

    return base_points * multiplier


def find_perfect_round_users(bets, results):
    """Users whose every bet in the round matches the fixture result.

    Only the fixtures a user actually bet on count, so partial participation
    stays eligible. Users with a bet on a fixture missing from ``results``
    are left out; their outcome is not known yet.

    Args:
        bets: iterable of objects with user_id, fixture_id, prediction
        results: {fixture_id: settled result}
    """
    correctness = defaultdict(list)
    undecided = set()

    for bet in bets:
        result = results.get(bet.fixture_id)
        if result is None:
            undecided.add(bet.user_id)
            continue
        correctness[bet.user_id].append(bet.prediction == result)

    return {
        user_id
        for user_id, outcomes in correctness.items()
        if user_id not in undecided and outcomes and all(outcomes)
    }


def _empty_result():
    return {
        "success": False,
        "message": "",
        "bets_processed": 0,
        "bets_updated": 0,
        "errors": [],
        "scoring_incomplete": False,
        "skipped_fixture_ids": [],
    }


def _mark_round_scored(betting_round):
    betting_round.status = ROUND_SCORED
    betting_round.scored_at = datetime.now(timezone.utc)


@timer
def calculate_and_store_match_points(round_id):
    """Score every unscored bet of a betting round.

    Fixtures without a settled result are skipped with a warning and the
    result carries ``scoring_incomplete=True``; the round then stays in
    'scoring' so the next detector sweep retries it. Bets that already have
    points are never rewritten. All writes for the round happen in one
    commit; on failure nothing is written and the round stays unscored.

    Returns:
        dict: success, message, bets_processed, bets_updated, errors,
        scoring_incomplete, skipped_fixture_ids
    """
    result = _empty_result()

    try:
        betting_round = (
            BettingRound.query.filter_by(id=round_id).with_for_update().first()
        )
        if betting_round is None:
            result["message"] = f"Betting round {round_id} not found"
            result["errors"].append(normalize_error(result["message"], kind=NOT_FOUND))
            return result

        if betting_round.status == ROUND_SCORED:
            db.session.rollback()
            result["success"] = True
            result["message"] = f"Round {round_id} already scored, skipping"
            logger.info(result["message"])
            return result

        config = ScoringConfig.for_round(betting_round)
        fixtures = list(betting_round.fixtures)

        if not fixtures:
            _mark_round_scored(betting_round)
            db.session.commit()
            result["success"] = True
            result["message"] = f"Round {round_id} has no fixtures; marked as scored"
            logger.info(result["message"])
            return result

        results = {}
        for fixture in fixtures:
            settled = fixture.settled_result if fixture.is_finished else None
            if settled is None:
                result["skipped_fixture_ids"].append(fixture.id)
                logger.warning(
                    f"Round {round_id}: fixture {fixture.id} has no settled result "
                    f"(status {fixture.status_short}); its bets are skipped"
                )
            else:
                results[fixture.id] = settled

        round_bets = UserBet.query.filter(
            UserBet.betting_round_id == round_id,
            UserBet.fixture_id.in_([fixture.id for fixture in fixtures]),
        ).all()

        pending_bets = [bet for bet in round_bets if bet.points_awarded is None]
        result["bets_processed"] = len(pending_bets)

        if not pending_bets:
            _mark_round_scored(betting_round)
            db.session.commit()
            result["success"] = True
            result["message"] = f"Round {round_id} has no bets to score; marked as scored"
            logger.info(result["message"])
            return result

        perfect_users = set()
        undecided_users = set()
        if not config.bonus_active:
            # Perfect-round status depends on all of a user's bets, scored or not
            perfect_users = find_perfect_round_users(round_bets, results)
            undecided_users = {
                bet.user_id for bet in round_bets if bet.fixture_id not in results
            }

        updates = []
        for bet in pending_bets:
            fixture_result = results.get(bet.fixture_id)
            if fixture_result is None or bet.user_id in undecided_users:
                continue
            points = calculate_bet_points(
                bet.prediction,
                fixture_result,
                config,
                is_perfect_round=bet.user_id in perfect_users,
            )
            updates.append((bet, points))

        for bet, points in updates:
            bet.points_awarded = points

        if result["skipped_fixture_ids"]:
            result["scoring_incomplete"] = True
            betting_round.status = ROUND_SCORING
        else:
            _mark_round_scored(betting_round)

        db.session.commit()

        result["success"] = True
        result["bets_updated"] = len(updates)
        result["message"] = (
            f"Round {round_id} scored: {len(updates)}/{len(pending_bets)} bets updated"
            + (
                f", {len(result['skipped_fixture_ids'])} fixtures awaiting results"
                if result["scoring_incomplete"]
                else ""
            )
            + (" (bonus round)" if config.bonus_active else "")
        )
        logger.info(
            f"{result['message']}; perfect rounds: {len(perfect_users)}"
        )
        return result

    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to score round {round_id}: {e}", exc_info=True)
        result["success"] = False
        result["bets_updated"] = 0
        result["message"] = f"Failed to score round {round_id}"
        result["errors"].append(normalize_error(e, message=result["message"]))
        return result


def get_user_points_up_to_round(round_id):
    """Total awarded points per user for all rounds up to and including round_id

    Used to reconstruct historical positions (e.g. position change in emails).
    """
    rows = (
        db.session.query(
            UserBet.user_id,
            func.coalesce(func.sum(UserBet.points_awarded), 0).label("total_points"),
        )
        .filter(
            UserBet.betting_round_id <= round_id,
            UserBet.points_awarded.isnot(None),
        )
        .group_by(UserBet.user_id)
        .all()
    )
    return {row.user_id: int(row.total_points) for row in rows}
