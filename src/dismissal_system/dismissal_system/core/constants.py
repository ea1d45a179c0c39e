"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

QUEUE_ID_FORMAT = "%Y%m%d"
DEFAULT_SCHOOL_TIMEZONE = "America/Chicago"
DEFAULT_COUNTS_POLL_SECONDS = 30
DEFAULT_CAPTURE_MAX_FAILED_READS = 30
DEFAULT_SCAN_BUILDING = "Main"
DEFAULT_HISTORY_LIMIT = 200
DEFAULT_SCAN_ACTOR = "qr-scanner"
