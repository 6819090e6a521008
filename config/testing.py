import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_tracker_test"),
}

CACHE_DIR = os.getenv("CACHE_DIR", ".attendance_cache_test")

LOGIN_WAIT_ATTEMPTS = int(os.getenv("LOGIN_WAIT_ATTEMPTS", "10"))
LOGIN_WAIT_INTERVAL_MS = int(os.getenv("LOGIN_WAIT_INTERVAL_MS", "0"))

DEFAULT_REQUIRED_ATTENDANCE = 75.0

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
