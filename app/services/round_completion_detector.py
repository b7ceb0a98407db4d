"""
Round Completion Detector

Finds open betting rounds whose fixtures have all finished, moves them to
'scoring' and hands their ids to the scoring engine. A reconciliation sweep
adds rounds stuck in 'scoring' from an earlier run that did not finish.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import BettingRound
from app.models.betting_round import ROUND_OPEN, ROUND_SCORING
from app.utils.errors import normalize_error

logger = logging.getLogger(__name__)


def is_round_complete(betting_round):
    """Every linked fixture is finished. Rounds without fixtures never are."""
    fixtures = list(betting_round.fixtures)
    if not fixtures:
        return False
    return all(fixture.is_finished for fixture in fixtures)


class RoundCompletionDetector:
    """Detects betting rounds that are ready to be scored"""

    def detect_and_mark_completed_rounds(self):
        """
        Returns:
            dict: completed_round_ids (newly marked plus reconciled, no
            duplicates, in processing order) and errors
        """
        completed_round_ids = []
        errors = []

        try:
            open_rounds = (
                BettingRound.query.filter_by(status=ROUND_OPEN)
                .order_by(BettingRound.id)
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to load open rounds: {e}", exc_info=True)
            errors.append(normalize_error(e, message="Failed to load open rounds"))
            open_rounds = []

        logger.info(f"Checking {len(open_rounds)} open rounds for completion")

        for betting_round in open_rounds:
            try:
                if not is_round_complete(betting_round):
                    continue
                self._mark_round_scoring(betting_round)
                completed_round_ids.append(betting_round.id)
                logger.info(f"Round {betting_round.id} complete, marked for scoring")
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(
                    f"Failed to mark round {betting_round.id} for scoring: {e}",
                    exc_info=True,
                )
                errors.append(
                    normalize_error(
                        e, message=f"Failed to mark round {betting_round.id} for scoring"
                    )
                )

        reconciled_ids, reconcile_errors = self.reconcile_stuck_rounds()
        errors.extend(reconcile_errors)
        for round_id in reconciled_ids:
            if round_id not in completed_round_ids:
                completed_round_ids.append(round_id)

        return {"completed_round_ids": completed_round_ids, "errors": errors}

    def reconcile_stuck_rounds(self):
        """Recovery path: rounds left in 'scoring' by an interrupted run.

        A round is stuck when its status is 'scoring' at the start of a
        sweep; anything marked earlier in the same sweep is deduplicated by
        the caller.

        Returns:
            (round_ids, errors)
        """
        try:
            stuck = (
                BettingRound.query.filter_by(status=ROUND_SCORING)
                .order_by(BettingRound.id)
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to load rounds stuck in scoring: {e}", exc_info=True)
            return [], [
                normalize_error(e, message="Failed to load rounds stuck in scoring")
            ]

        round_ids = [betting_round.id for betting_round in stuck]
        if round_ids:
            logger.warning(f"Reconciling rounds stuck in scoring: {round_ids}")
        return round_ids, []

    def _mark_round_scoring(self, betting_round):
        # Guarded update so a concurrent sweep cannot move the round twice
        updated = BettingRound.query.filter_by(
            id=betting_round.id, status=ROUND_OPEN
        ).update({"status": ROUND_SCORING}, synchronize_session="fetch")
        db.session.commit()
        return updated
