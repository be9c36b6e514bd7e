import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "perizinan_test"),
}

DEBUG = False
TESTING = True

STORE_BACKEND = "memory"
ROLE_RETRY_SECONDS = 0.0

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads-test")
SCHOOL_NAME = "Test School"

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"

AUTO_INIT_DB = False
AUTO_SEED_DB = True
