import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "perizinan_db"),
}

DEBUG = False

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")
ROLE_RETRY_SECONDS = float(os.getenv("ROLE_RETRY_SECONDS", "2"))
SESSION_IDLE_SECONDS = float(os.getenv("SESSION_IDLE_SECONDS", str(8 * 60 * 60)))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
SCHOOL_NAME = os.getenv("SCHOOL_NAME", "Your School Name")

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
