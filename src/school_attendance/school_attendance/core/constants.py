"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_API_TIMEOUT_SECONDS = 15.0
DEFAULT_REMARKS_MAX_LENGTH = 200
DEFAULT_LOAD_WORKERS = 2
DEFAULT_SESSION_IDLE_SECONDS = 2 * 60 * 60
ISO_DATE_FORMAT = "%Y-%m-%d"
