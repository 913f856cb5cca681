"""
Wall clock helpers: every timestamp is a naive datetime in settings.TIMEZONE.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from parcel_tracker.config import settings


def local_now() -> datetime:
    """Current wall-clock time in the operating time zone, minute precision kept."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)
