"""
Simple in-memory rate limiter for authentication endpoints.

Uses a sliding window per client IP. State lives in the process, so each
server instance counts on its own.
"""
import time
from collections import defaultdict
from functools import wraps
from quart import request, jsonify

# {ip_address: [timestamp, ...]}
_rate_limit_store = defaultdict(list)

# Cleanup old entries every N requests
_cleanup_counter = 0
_cleanup_threshold = 100


def _get_client_ip():
    """Extract client IP from request headers (handles proxies)."""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    if request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP')
    return request.remote_addr or 'unknown'


def _cleanup_old_entries():
    """Remove expired entries to prevent memory bloat."""
    global _cleanup_counter
    _cleanup_counter += 1

    if _cleanup_counter >= _cleanup_threshold:
        current_time = time.time()
        for ip in list(_rate_limit_store):
            _rate_limit_store[ip] = [
                ts for ts in _rate_limit_store[ip] if current_time - ts < 3600
            ]
            if not _rate_limit_store[ip]:
                del _rate_limit_store[ip]
        _cleanup_counter = 0


def rate_limit(max_attempts: int, window_seconds: int):
    """
    Rate limiting decorator using sliding window.

    Example:
        @rate_limit(max_attempts=5, window_seconds=60)  # 5 requests per minute
        async def login():
            ...
    """
    def decorator(fn):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            # Skip rate limiting for OPTIONS (CORS preflight)
            if request.method == "OPTIONS":
                return await fn(*args, **kwargs)

            client_ip = _get_client_ip()
            current_time = time.time()

            cutoff_time = current_time - window_seconds
            valid_attempts = [ts for ts in _rate_limit_store[client_ip] if ts > cutoff_time]

            if len(valid_attempts) >= max_attempts:
                oldest_timestamp = min(valid_attempts)
                retry_after = int(window_seconds - (current_time - oldest_timestamp)) + 1
                return jsonify({
                    "error": "Rate limit exceeded",
                    "message": f"Too many attempts. Please try again in {retry_after} seconds.",
                    "retry_after": retry_after
                }), 429

            valid_attempts.append(current_time)
            _rate_limit_store[client_ip] = valid_attempts

            _cleanup_old_entries()

            return await fn(*args, **kwargs)

        return wrapper
    return decorator


def reset_rate_limit(ip_address: str = None):
    """Reset rate limit for an IP address, or for everyone when no IP is given."""
    if ip_address:
        _rate_limit_store.pop(ip_address, None)
    else:
        _rate_limit_store.clear()
