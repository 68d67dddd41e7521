"""
Timezone utility functions for the Fan Hub
"""

from datetime import datetime, timedelta, timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone():
    """Get the application's configured timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the application's timezone"""
    if dt is None:
        return None

    app_tz = get_app_timezone()

    # If datetime is naive, assume it's UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(app_tz)


def convert_to_utc(dt):
    """Convert a datetime to UTC"""
    if dt is None:
        return None

    # If datetime is naive, assume it's in the application timezone
    if dt.tzinfo is None:
        app_tz = get_app_timezone()
        dt = app_tz.localize(dt)

    return dt.astimezone(timezone.utc)


def to_db_time(dt):
    """Naive UTC datetime, the form timestamps are stored in"""
    if dt is None:
        return None
    return convert_to_utc(dt).replace(tzinfo=None)


def get_week_start(now=None):
    """
    Start of the current week: Monday 00:00:00 in the application timezone

    On a Sunday the week started six days earlier.

    Args:
        now: Reference time (defaults to the current time)

    Returns:
        Timezone-aware datetime in the application timezone
    """
    app_tz = get_app_timezone()
    local_now = convert_to_app_timezone(now or get_utc_time())

    monday = local_now.date() - timedelta(days=local_now.weekday())
    return app_tz.localize(datetime(monday.year, monday.month, monday.day))
