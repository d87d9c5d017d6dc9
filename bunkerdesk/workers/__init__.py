"""
RQ (Redis Queue) worker infrastructure for background jobs.
"""
import redis
from rq import Queue
from bunkerdesk.config import REDIS_URL, REMINDER_JOB_TIMEOUT_MINUTES
from bunkerdesk.utils.logging_utils import logger

# Redis connection (shared across all queues)
# Gracefully handle missing Redis in development
redis_conn = None
reminders_queue = None

try:
    redis_conn = redis.from_url(REDIS_URL, socket_connect_timeout=2)
    redis_conn.ping()

    # Queue for call reminder digests
    reminders_queue = Queue('reminders', connection=redis_conn,
                            default_timeout=REMINDER_JOB_TIMEOUT_MINUTES * 60)
    logger.info("[Workers] Redis connection established successfully")
except (redis.ConnectionError, redis.TimeoutError) as e:
    redis_conn = None
    logger.warning(f"[Workers] Redis not available: {str(e)}")
    logger.warning("[Workers] Reminder digests will be sent inline instead of queued")
