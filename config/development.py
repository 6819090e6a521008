import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_tracker"),
}

# Local snapshot of subjects, lecture slots and records (one JSON file each)
CACHE_DIR = os.getenv("CACHE_DIR", ".attendance_cache")

# Session readiness poll after login
LOGIN_WAIT_ATTEMPTS = int(os.getenv("LOGIN_WAIT_ATTEMPTS", "10"))
LOGIN_WAIT_INTERVAL_MS = int(os.getenv("LOGIN_WAIT_INTERVAL_MS", "200"))

DEFAULT_REQUIRED_ATTENDANCE = float(os.getenv("DEFAULT_REQUIRED_ATTENDANCE", "75"))

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
