"""
Centralized logging configuration for BunkerDesk CRM.

Provides:
- Structured logging with user context
- Slow operation timing
- Request/response logging
- Audit trail for record changes
"""

import asyncio
import logging
import time
from functools import wraps
from typing import Optional, Any, Dict
from quart import request
import sys

from bunkerdesk.config import LOG_LEVEL

# Configure root logger
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s [%(levelname)s] %(name)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# Create logger for this module
logger = logging.getLogger('bunkerdesk')


def get_request_context() -> Dict[str, Any]:
    """Extract relevant context from the current request."""
    context = {}

    try:
        if request:
            context['method'] = request.method
            context['path'] = request.path
            context['remote_addr'] = request.remote_addr

            if hasattr(request, 'user') and request.user:
                context['user_id'] = getattr(request.user, 'id', None)
                context['user_email'] = getattr(request.user, 'email', None)
    except RuntimeError:
        # Outside request context
        pass

    return context


def log_endpoint(endpoint_name: str, duration_ms: float, status_code: int = 200):
    """
    Log API endpoint performance.

    Args:
        endpoint_name: Name of the endpoint/route
        duration_ms: Total endpoint execution time
        status_code: HTTP response status code
    """
    context = get_request_context()
    log_data = {
        'endpoint': endpoint_name,
        'duration_ms': round(duration_ms, 2),
        'status_code': status_code,
        **context
    }

    level = logging.WARNING if status_code >= 400 else logging.INFO
    logger.log(level, f"Endpoint completed: {log_data}")


def log_error(error: Exception, context_message: str = ""):
    """
    Log errors with full context.

    Args:
        error: The exception that occurred
        context_message: Additional context about what was being attempted
    """
    context = get_request_context()
    log_data = {
        'error_type': type(error).__name__,
        'error_message': str(error),
        'context': context_message,
        **context
    }

    logger.error(f"Error occurred: {log_data}", exc_info=True)


def log_user_action(action: str, entity_type: str, entity_id: Optional[int] = None,
                    user_id: Optional[int] = None):
    """
    Log record changes for the audit trail.

    Args:
        action: Description of the action (e.g., "created", "deleted", "shared")
        entity_type: Type of entity (e.g., "contact", "call", "note")
        entity_id: Optional ID of the entity
        user_id: Optional user ID, taken from the request when omitted
    """
    context = get_request_context()

    log_data = {
        'action': action,
        'entity_type': entity_type,
        'entity_id': entity_id,
        'user_id': user_id or context.get('user_id'),
    }

    logger.info(f"User action: {log_data}")


def timing_logger(operation_name: str):
    """
    Decorator to automatically log operation timing.

    Usage:
        @timing_logger("build_reminder_digest")
        def build_digest():
            ...
    """
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
                duration_ms = (time.time() - start_time) * 1000
                log_endpoint(operation_name, duration_ms)
                return result
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                log_endpoint(operation_name, duration_ms, status_code=500)
                log_error(e, f"Error in {operation_name}")
                raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                duration_ms = (time.time() - start_time) * 1000
                log_endpoint(operation_name, duration_ms)
                return result
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                log_endpoint(operation_name, duration_ms, status_code=500)
                log_error(e, f"Error in {operation_name}")
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
