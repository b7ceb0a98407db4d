"""Decides whether enough teams are near the end of the season to start the cup"""

import logging

from app.utils.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_ACTIVATION_THRESHOLD = 60


def validate_threshold(threshold):
    if threshold is None or isinstance(threshold, bool):
        raise ValidationError("Threshold must be a number between 0 and 100")
    try:
        value = float(threshold)
    except (TypeError, ValueError):
        raise ValidationError(f"Threshold must be a number between 0 and 100, got {threshold!r}")
    if not 0 <= value <= 100:
        raise ValidationError(f"Threshold must be between 0 and 100, got {threshold}")
    return threshold


class ActivationConditionCalculator:
    """Percentage of teams with five or fewer games left, compared to a threshold"""

    def __init__(self, threshold=DEFAULT_ACTIVATION_THRESHOLD):
        self.threshold = validate_threshold(threshold)

    def calculate(self, fixture_data):
        """
        Args:
            fixture_data: result of FixtureDataService.get_fixture_data()

        Returns:
            dict: condition_met, total_teams, teams_with_five_or_fewer_games,
            percentage_with_five_or_fewer_games, threshold, reasoning

        Raises:
            ValidationError: fixture_data is missing
        """
        if fixture_data is None:
            raise ValidationError("Fixture data is required to calculate the activation condition")

        total_teams = fixture_data.get("total_teams", 0)
        few_left = fixture_data.get("teams_with_five_or_fewer_games", 0)
        percentage = fixture_data.get("percentage_with_five_or_fewer_games", 0.0)

        if total_teams == 0:
            return {
                "condition_met": False,
                "total_teams": 0,
                "teams_with_five_or_fewer_games": 0,
                "percentage_with_five_or_fewer_games": 0.0,
                "threshold": self.threshold,
                "reasoning": "No teams found in the season",
            }

        condition_met = percentage >= self.threshold
        reasoning = (
            f"{few_left}/{total_teams} teams ({percentage:.1f}%) have ≤5 games remaining, "
            f"which {'meets' if condition_met else 'does not meet'} the {self.threshold:g}% "
            "threshold for cup activation"
        )
        logger.info(f"Condition {'MET' if condition_met else 'NOT MET'} - {reasoning}")

        return {
            "condition_met": condition_met,
            "total_teams": total_teams,
            "teams_with_five_or_fewer_games": few_left,
            "percentage_with_five_or_fewer_games": percentage,
            "threshold": self.threshold,
            "reasoning": reasoning,
        }
