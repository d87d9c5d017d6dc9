import asyncio
import os
import tempfile

_db_fd, _db_path = tempfile.mkstemp(suffix=".db")
os.close(_db_fd)
os.environ["DATABASE_URL"] = f"sqlite:///{_db_path}"
# Nothing listens here, so reminder jobs run inline
os.environ.setdefault("REDIS_URL", "redis://localhost:1/0")

import pytest

from bunkerdesk import create_app
from bunkerdesk.database import Base, SessionLocal, engine
from bunkerdesk.models import User, Role
from bunkerdesk.utils.auth_utils import create_token, hash_password
from bunkerdesk.utils.rate_limiter import reset_rate_limit


@pytest.fixture(autouse=True)
def reset_db():
    SessionLocal.remove()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    reset_rate_limit()
    yield
    SessionLocal.remove()


def make_user(email="trader@example.com", password="secret-pass", roles=("admin",)):
    session = SessionLocal()
    try:
        user = User(email=email, password_hash=hash_password(password), full_name=email.split("@")[0])
        for name in roles:
            role = session.query(Role).filter_by(name=name).first() or Role(name=name)
            user.roles.append(role)
        session.add(user)
        session.commit()
        session.refresh(user)
        token = create_token(user)
        return user.id, token
    finally:
        session.close()


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def user_id(user):
    return user[0]


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {user[1]}"}


@pytest.fixture
def other_user():
    return make_user("colleague@example.com", roles=("user",))


@pytest.fixture
def other_headers(other_user):
    return {"Authorization": f"Bearer {other_user[1]}"}


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def api(client, auth_headers):
    """Call the app synchronously; returns (status_code, json_body)."""
    def call(method, path, json=None, query_string=None, headers=None):
        async def run():
            kwargs = {"method": method, "headers": auth_headers if headers is None else headers}
            if json is not None:
                kwargs["json"] = json
            if query_string is not None:
                kwargs["query_string"] = query_string
            response = await client.open(path, **kwargs)
            return response.status_code, await response.get_json()

        return asyncio.run(run())

    return call


@pytest.fixture
def raw(client, auth_headers):
    """Like api, but returns (status_code, body_text, headers) for CSV and other text responses."""
    def call(method, path, query_string=None):
        async def run():
            response = await client.open(path, method=method, headers=auth_headers, query_string=query_string)
            return response.status_code, await response.get_data(as_text=True), response.headers

        return asyncio.run(run())

    return call


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    if os.path.exists(_db_path):
        os.remove(_db_path)
