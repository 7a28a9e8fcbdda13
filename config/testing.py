import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "campus_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

SESSION_DURATION_MINUTES = 45
MAX_SESSIONS_PER_CLASS = 10
SESSION_PATCH_MODE = os.getenv("SESSION_PATCH_MODE", "strict")
DEFAULT_PAGE_LIMIT = 20

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
