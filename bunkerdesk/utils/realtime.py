"""
In-process change broker behind the Server-Sent Events stream.

Every write publishes {table, event, id} to the owning user's
subscribers. Each subscriber has a bounded queue; when it is full new
events for that subscriber are dropped.
"""
import asyncio
import threading
from collections import defaultdict

from bunkerdesk.config import REALTIME_MAX_CONN_PER_USER, REALTIME_QUEUE_SIZE
from bunkerdesk.constants import CHANGE_EVENTS
from bunkerdesk.utils.logging_utils import logger


class TooManyConnections(Exception):
    pass


class Subscription:
    def __init__(self, user_id: int, tables=None, queue_size: int = REALTIME_QUEUE_SIZE):
        self.user_id = user_id
        self.tables = set(tables) if tables else None
        self.queue = asyncio.Queue(maxsize=queue_size)
        self.dropped = 0

    def wants(self, table: str) -> bool:
        return self.tables is None or table in self.tables


class ChangeBroker:
    def __init__(self, max_conn_per_user: int = REALTIME_MAX_CONN_PER_USER,
                 queue_size: int = REALTIME_QUEUE_SIZE):
        self.max_conn_per_user = max_conn_per_user
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._subscribers = defaultdict(list)

    def subscribe(self, user_id: int, tables=None) -> Subscription:
        with self._lock:
            current = self._subscribers[user_id]
            if len(current) >= self.max_conn_per_user:
                raise TooManyConnections(f"User {user_id} already has {len(current)} streams open")
            sub = Subscription(user_id, tables, self.queue_size)
            current.append(sub)
            return sub

    def unsubscribe(self, sub: Subscription):
        with self._lock:
            current = self._subscribers.get(sub.user_id, [])
            if sub in current:
                current.remove(sub)
            if not current:
                self._subscribers.pop(sub.user_id, None)

    def connection_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(user_id, []))

    def publish(self, user_id: int, table: str, event: str, record_id) -> int:
        """Queue a change for every matching subscriber; returns how many got it."""
        if event not in CHANGE_EVENTS:
            raise ValueError(f"Unknown change event '{event}'")

        message = {"table": table, "event": event, "id": record_id}
        delivered = 0
        with self._lock:
            subscribers = list(self._subscribers.get(user_id, []))

        for sub in subscribers:
            if not sub.wants(table):
                continue
            try:
                sub.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning(f"[Realtime] Queue full for user {user_id}, dropped {table} {event}")
        return delivered


broker = ChangeBroker()


def publish_change(user_id: int, table: str, event: str, record_id=None) -> int:
    return broker.publish(user_id, table, event, record_id)
