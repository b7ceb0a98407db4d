"""
Timezone utility functions for the prediction league
"""

from datetime import datetime, timezone

import pytz
from flask import current_app


def get_app_timezone():
    """Get the application's configured timezone"""
    try:
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Return an aware UTC datetime; naive values are assumed to be UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def isoformat_utc(dt):
    """ISO-8601 string in UTC, or None"""
    dt = ensure_utc(dt)
    return dt.isoformat() if dt else None


def format_local(dt, format_str="%Y-%m-%d %H:%M %Z"):
    """Format a datetime in the application's timezone"""
    if dt is None:
        return "N/A"
    return ensure_utc(dt).astimezone(get_app_timezone()).strftime(format_str)
