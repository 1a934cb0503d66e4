# timezone_utils.py
"""
Timezone utilities for FPMS
Handles conversion between UTC and the outlet's local time
"""

from datetime import date, datetime, timezone
import pytz

from outlet_config import OutletConfig

LOCAL_TIMEZONE = pytz.timezone(OutletConfig.TIMEZONE)

def get_local_time() -> datetime:
    """Get current time in local timezone"""
    utc_now = datetime.now(timezone.utc)
    return utc_now.astimezone(LOCAL_TIMEZONE)

def local_today() -> date:
    """Calendar date at the outlet, used as the default shift date"""
    return get_local_time().date()

def utc_to_local(utc_dt: datetime) -> datetime:
    """Convert UTC datetime to local timezone"""
    if utc_dt is None:
        return None

    # Naive values are stored as UTC
    if utc_dt.tzinfo is None:
        utc_dt = pytz.utc.localize(utc_dt)

    return utc_dt.astimezone(LOCAL_TIMEZONE)

def format_local_datetime(dt: datetime, format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a stored UTC datetime in local time"""
    if dt is None:
        return ""
    return utc_to_local(dt).strftime(format_str)
