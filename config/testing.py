import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "dismissal_test_db"),
}

DEBUG = False
LOG_LEVEL = "WARNING"

SCHOOL_TIMEZONE = "America/Chicago"
SCAN_BUILDING = "Main"
COUNTS_POLL_SECONDS = 1.0
CAMERA_SOURCE = None
CAPTURE_MAX_FAILED_READS = 5

AUTO_INIT_DB = False
AUTO_SEED_DB = False
