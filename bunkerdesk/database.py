from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy import create_engine, event
from bunkerdesk.config import SQLALCHEMY_DATABASE_URI, SLOW_QUERY_THRESHOLD_MS
import logging
import time

# Set up query logging
query_logger = logging.getLogger('sqlalchemy.queries')

def _log_slow_query(conn, cursor, statement, parameters, context, executemany):
    """Log slow database queries for performance monitoring."""
    duration_ms = (time.time() - context._query_start_time) * 1000

    if duration_ms > SLOW_QUERY_THRESHOLD_MS:
        query_logger.warning(
            f"Slow query detected ({duration_ms:.2f}ms): {statement[:200]}..."
        )

connect_args = {}
if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
    # Quart serves requests from more than one thread under hypercorn workers
    connect_args["check_same_thread"] = False

engine = create_engine(
    SQLALCHEMY_DATABASE_URI,
    echo=False,  # Don't echo all queries, we'll log slow ones only
    future=True,
    connect_args=connect_args,
)

# Attach query timing event listener
@event.listens_for(engine, "before_cursor_execute")
def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.time()

@event.listens_for(engine, "after_cursor_execute")
def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    _log_slow_query(conn, cursor, statement, parameters, context, executemany)

if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = scoped_session(sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False))
Base = declarative_base()


def init_db():
    """
    Initialize the database by creating all tables.
    This is safe to run multiple times - it only creates tables that don't exist.
    """
    # Import all models to ensure they're registered with Base.metadata
    import bunkerdesk.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
