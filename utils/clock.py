from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def shelter_now() -> datetime:
    """
    Current wall-clock time at the shelter, as a naive datetime.
    Booking dates/times and every stored timestamp use this clock.
    """
    tz_name = "UTC"
    if has_app_context():
        tz_name = current_app.config.get("SHELTER_TIMEZONE", "UTC")
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
