"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_REQUIRED_ATTENDANCE = 75.0
DEFAULT_HOURS_LOGGED = 1
MIN_SLOT_HOURS = 1
MAX_SLOT_HOURS = 4

LOGIN_WAIT_ATTEMPTS = 10
LOGIN_WAIT_INTERVAL_SECONDS = 0.2

LOCAL_ID_PREFIX = "local_"
LOCAL_SLOT_ID_PREFIX = "local_slot_"

DATE_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"
TIME_FORMAT = "%H:%M"
