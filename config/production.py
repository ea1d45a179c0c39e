import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "dismissal_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SCHOOL_TIMEZONE = os.getenv("SCHOOL_TIMEZONE", "America/Chicago")
SCAN_BUILDING = os.getenv("SCAN_BUILDING", "Main")
COUNTS_POLL_SECONDS = float(os.getenv("COUNTS_POLL_SECONDS", "30"))
CAMERA_SOURCE = os.getenv("CAMERA_SOURCE") or None
CAPTURE_MAX_FAILED_READS = int(os.getenv("CAPTURE_MAX_FAILED_READS", "30"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
