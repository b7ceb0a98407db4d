"""Reads whether the cup is already active for a season"""

from app.models import Season
from app.utils.timezone_utils import isoformat_utc


def status_for(season):
    if season is None:
        return {
            "season_id": None,
            "season_name": None,
            "is_activated": False,
            "activated_at": None,
        }
    return {
        "season_id": season.id,
        "season_name": season.name,
        "is_activated": bool(season.last_round_special_activated),
        "activated_at": isoformat_utc(season.last_round_special_activated_at),
    }


class CupActivationStatusChecker:
    def check_current_season(self):
        return status_for(Season.get_current_season())
