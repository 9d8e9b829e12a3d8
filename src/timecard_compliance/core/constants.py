"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MINUTES_PER_DAY = 24 * 60

STANDARD_DAILY_MINUTES = 8 * 60
LONG_SHIFT_THRESHOLD_MINUTES = 6 * 60
INFERRED_BREAK_MINUTES = 60

MAX_SHIFT_MINUTES = 16 * 60
MIN_SHIFT_MINUTES = 5
MAX_BREAK_MINUTES = 4 * 60

DEFAULT_PENDING_LIMIT = 500
DEFAULT_REPORT_DAYS = 31
