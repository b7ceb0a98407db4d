from app import db  # noqa: F401 - imported for model imports

from .betting_round import BettingRound, betting_round_fixtures
from .competition import Competition
from .cup_activation_log import CupActivationLog
from .fixture import Fixture
from .profile import Profile
from .season import Season
from .season_winner import SeasonWinner
from .team import Team
from .user_bet import UserBet
from .user_last_round_special_points import UserLastRoundSpecialPoints
from .user_round_dynamic_points import UserRoundDynamicPoints

__all__ = [
    "BettingRound",
    "betting_round_fixtures",
    "Competition",
    "CupActivationLog",
    "Fixture",
    "Profile",
    "Season",
    "SeasonWinner",
    "Team",
    "UserBet",
    "UserLastRoundSpecialPoints",
    "UserRoundDynamicPoints",
]
