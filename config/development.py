import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "perizinan_db"),
}

DEBUG = True

# "mysql" or "memory" (records and identities kept in process memory)
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory")

# Wait before the single retry of a missing role record
ROLE_RETRY_SECONDS = float(os.getenv("ROLE_RETRY_SECONDS", "2"))
SESSION_IDLE_SECONDS = float(os.getenv("SESSION_IDLE_SECONDS", str(8 * 60 * 60)))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
SCHOOL_NAME = os.getenv("SCHOOL_NAME", "Your School Name")

# Demo administrator created by AUTO_SEED_DB
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed the demo administrator on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "1")))
