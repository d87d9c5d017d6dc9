from datetime import datetime, timedelta
from functools import wraps

import bcrypt
from jose import JWTError, jwt
from quart import request, jsonify

from bunkerdesk.config import SECRET_KEY, TOKEN_EXPIRY_HOURS
from bunkerdesk.database import SessionLocal
from bunkerdesk.models import User
from bunkerdesk.utils.logging_utils import logger

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_token(user, expires_delta: timedelta = None) -> str:
    """Issue a signed bearer token for a user."""
    expire = datetime.utcnow() + (expires_delta or timedelta(hours=TOKEN_EXPIRY_HOURS))
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "roles": [role.name for role in user.roles],
        "exp": expire,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str):
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


def load_user_from_token(token: str):
    payload = decode_token(token)
    if not payload or "sub" not in payload:
        return None

    session = SessionLocal()
    try:
        user = session.get(User, int(payload["sub"]))
        if not user or not user.is_active:
            return None
        # Touch roles while the session is open
        _ = [role.name for role in user.roles]
        return user
    finally:
        session.close()


def requires_auth(roles=None):
    """
    Require a valid bearer token and, optionally, one of the given roles.
    The loaded user is available as request.user.
    """
    def decorator(fn):
        @wraps(fn)
        async def wrapper(*args, **kwargs):
            if request.method == "OPTIONS":
                return await fn(*args, **kwargs)

            auth_header = request.headers.get("Authorization", "")
            token = None
            if auth_header.startswith("Bearer "):
                token = auth_header.split(" ", 1)[1].strip()
            elif request.args.get("token"):
                # EventSource cannot send headers
                token = request.args.get("token")

            if not token:
                return jsonify({"error": "Missing token"}), 401

            user = load_user_from_token(token)
            if not user:
                return jsonify({"error": "Invalid or expired token"}), 401

            if roles:
                user_roles = {role.name for role in user.roles}
                if not user_roles.intersection(roles):
                    return jsonify({"error": "Forbidden"}), 403

            request.user = user
            return await fn(*args, **kwargs)

        return wrapper
    return decorator
