"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_ROLE_RETRY_SECONDS = 2.0
DEFAULT_CLIENT_IDLE_SECONDS = 8 * 60 * 60
DEFAULT_ITEMS_PER_PAGE = 10
REPORT_ROWS_PER_PAGE = 20
MIN_PASSWORD_LENGTH = 6
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M"
UNKNOWN_LABEL = "Unknown"

USERS_PATH = "users"
TEACHERS_PATH = "teachers"
STUDENTS_PATH = "students"
SCHEDULES_PATH = "schedules"
REQUESTS_PATH = "perizinan"
DOCUMENTS_PREFIX = "documents"
