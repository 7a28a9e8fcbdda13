"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

SESSION_DURATION_MINUTES = 45
MAX_SESSIONS_PER_CLASS = 10

SEMESTER_MIN = 1
SEMESTER_MAX = 8

# Display format for dates crossing the API boundary (DD-MM-YYYY).
DATE_FORMAT = "%d-%m-%Y"
DATETIME_FORMAT = "%d-%m-%Y %H:%M:%S"
TIME_FORMAT = "%H:%M"

DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

RECORD_ID_PREFIX = "ATT"
