import os

# Redis configuration
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./events.db")

# Stats service
STATS_SERVER_URL = os.getenv("STATS_SERVER_URL", "http://localhost:9090")
APP_NAME = os.getenv("APP_NAME", "event-service")

# Event lifecycle
OWNER_EVENT_LEAD_HOURS = int(os.getenv("OWNER_EVENT_LEAD_HOURS", "2"))
ADMIN_EVENT_LEAD_HOURS = int(os.getenv("ADMIN_EVENT_LEAD_HOURS", "1"))

# Admission control
EVENT_LOCK_TIMEOUT = int(os.getenv("EVENT_LOCK_TIMEOUT", "10"))
EVENT_LOCK_BLOCKING_TIMEOUT = int(os.getenv("EVENT_LOCK_BLOCKING_TIMEOUT", "5"))
ADMISSION_RETRIES = int(os.getenv("ADMISSION_RETRIES", "3"))
ALLOW_CANCEL_CONFIRMED = os.getenv("ALLOW_CANCEL_CONFIRMED", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_redis_url():
    return REDIS_URL


def get_database_url():
    return DATABASE_URL
