"""
Business-day rules for daily reporting.
"Today" is the calendar date in the configured business time zone.
"""
from datetime import date, datetime, timedelta
from typing import Optional, Tuple
import pytz
from ..config import settings


# Team report lookback per range, in days before today
TEAM_RANGE_DAYS = {"day": 1, "week": 7, "month": 30}


def business_today(now: Optional[datetime] = None, timezone_str: Optional[str] = None) -> date:
    """
    Current date in the business time zone.

    Args:
        now: Reference instant (UTC if naive). Defaults to the current time.
        timezone_str: IANA zone name (default from settings)

    Returns:
        Local calendar date
    """
    tz = pytz.timezone(timezone_str or settings.tz_default)
    if now is None:
        now = datetime.now(pytz.UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=pytz.UTC)
    return now.astimezone(tz).date()


def team_window(range_name: str, today: Optional[date] = None) -> Tuple[date, date]:
    """
    Inclusive (start, end) dates for a team report range ending today.

    day covers yesterday and today, week the last 7 days, month the last 30 days.
    """
    if range_name not in TEAM_RANGE_DAYS:
        raise ValueError(f"Unknown range: {range_name}")
    end = today or business_today()
    return end - timedelta(days=TEAM_RANGE_DAYS[range_name]), end
