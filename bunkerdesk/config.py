# bunkerdesk/config.py
import os

def _bool(env_name: str, default: bool = False) -> bool:
    return os.getenv(env_name, str(default)).strip().lower() in {"1", "true", "yes", "on"}

def _int(env_name: str, default: int) -> int:
    try:
        return int(os.getenv(env_name, default))
    except (TypeError, ValueError):
        return default

# --- Database ---------------------------------------------------------------
raw_db_url = os.getenv("DATABASE_URL", "sqlite:///bunkerdesk.db")
# Fly.io / Heroku style fix
if raw_db_url.startswith("postgres://"):
    raw_db_url = raw_db_url.replace("postgres://", "postgresql://", 1)

SQLALCHEMY_DATABASE_URI = raw_db_url

# --- App / Security ---------------------------------------------------------
SECRET_KEY = os.getenv("SECRET_KEY", "bunkerdesk-dev-only-secret")

# JWT lifetime for /api/login tokens
TOKEN_EXPIRY_HOURS = _int("TOKEN_EXPIRY_HOURS", 12)


# --- Mail (SMTP) ------------------------------------------------------------
MAIL_SERVER = os.getenv("MAIL_SERVER", "localhost")
MAIL_PORT = _int("MAIL_PORT", 587)
MAIL_USERNAME = os.getenv("MAIL_USERNAME", "")
MAIL_PASSWORD = os.getenv("MAIL_PASSWORD", "")
MAIL_USE_TLS = _bool("MAIL_USE_TLS", True)
MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "BunkerDesk CRM")
MAIL_FROM_EMAIL = os.getenv("MAIL_FROM_EMAIL", "noreply@bunkerdesk.local")


# --- Error Reporting ---------------------------------------------------------
SENTRY_DSN = os.getenv("SENTRY_DSN", "")

# --- Logging -----------------------------------------------------------------
# Options: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Log slow queries (milliseconds threshold)
SLOW_QUERY_THRESHOLD_MS = _int("SLOW_QUERY_THRESHOLD_MS", 200)


# --- Background jobs ---------------------------------------------------------
# Redis connection for RQ (reminder digest queue)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

REMINDER_JOB_TIMEOUT_MINUTES = _int("REMINDER_JOB_TIMEOUT_MINUTES", 10)


# --- Realtime ----------------------------------------------------------------
# Server-Sent Events change stream
REALTIME_HEARTBEAT_SECONDS = _int("REALTIME_HEARTBEAT_SECONDS", 25)
REALTIME_MAX_CONN_PER_USER = _int("REALTIME_MAX_CONN_PER_USER", 5)
REALTIME_QUEUE_SIZE = _int("REALTIME_QUEUE_SIZE", 100)


# --- Scheduling --------------------------------------------------------------
# Gap left between consecutive call slots
CALL_BUFFER_MINUTES = _int("CALL_BUFFER_MINUTES", 5)

# Timezone assumed for contacts that have none
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Europe/London")


# --- CORS --------------------------------------------------------------------
#   CORS_ALLOWED_ORIGINS="http://localhost:5173,https://crm.example.com"
CORS_ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",") if o.strip()
] or ["http://localhost:5173", "http://localhost:5174"]
