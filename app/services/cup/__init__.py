"""Last Round Special (cup) services"""

from .activation_condition_calculator import (
    DEFAULT_ACTIVATION_THRESHOLD,
    ActivationConditionCalculator,
)
from .activation_detection_service import CupActivationDetectionService
from .activation_logger import CupActivationLogger
from .activation_status_checker import CupActivationStatusChecker
from .cup_scoring_service import get_cup_standings
from .cup_winner_determination_service import CupWinnerDeterminationService
from .fixture_data_service import FixtureDataService
from .idempotent_activation_service import IdempotentActivationService

__all__ = [
    "DEFAULT_ACTIVATION_THRESHOLD",
    "ActivationConditionCalculator",
    "CupActivationDetectionService",
    "CupActivationLogger",
    "CupActivationStatusChecker",
    "CupWinnerDeterminationService",
    "FixtureDataService",
    "IdempotentActivationService",
    "get_cup_standings",
]
