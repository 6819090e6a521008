import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_tracker"),
}

CACHE_DIR = os.getenv("CACHE_DIR", "/var/lib/attendance_tracker/cache")

LOGIN_WAIT_ATTEMPTS = int(os.getenv("LOGIN_WAIT_ATTEMPTS", "10"))
LOGIN_WAIT_INTERVAL_MS = int(os.getenv("LOGIN_WAIT_INTERVAL_MS", "200"))

DEFAULT_REQUIRED_ATTENDANCE = float(os.getenv("DEFAULT_REQUIRED_ATTENDANCE", "75"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
