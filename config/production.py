import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "campus_attendance"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

SESSION_DURATION_MINUTES = int(os.getenv("SESSION_DURATION_MINUTES", "45"))
MAX_SESSIONS_PER_CLASS = int(os.getenv("MAX_SESSIONS_PER_CLASS", "10"))
SESSION_PATCH_MODE = os.getenv("SESSION_PATCH_MODE", "strict")
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
