import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('SECRET_KEY', 'test-secret-key')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from edulearn.auth.deps import get_db  # noqa: E402
from edulearn.config import settings  # noqa: E402
from edulearn.db.session import Base, init_db  # noqa: E402
from edulearn.main import create_app  # noqa: E402
from edulearn.models.user import User  # noqa: E402
from edulearn.utils.security import create_session_token, hash_password  # noqa: E402

ADMIN_KEY = 'test-admin-key'


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, 'openrouter_api_key', None)
    monkeypatch.setattr(settings, 'admin_api_key', ADMIN_KEY)
    monkeypatch.setattr(settings, 'google_client_id', None)
    monkeypatch.setattr(settings, 'google_client_secret', None)
    monkeypatch.setattr(settings, 'brightspace_client_id', None)
    monkeypatch.setattr(settings, 'brightspace_client_secret', None)
    monkeypatch.setattr(settings, 'frontend_url', 'http://localhost:3000')


@pytest.fixture
def engine():
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def app(session_factory):
    application = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(db_session):
    def _make(email: str, *, name: str = 'Test User', is_admin: bool = False, api_key: str | None = None) -> User:
        user = User(
            email=email,
            name=name,
            password_hash=hash_password('password123'),
            role='admin' if is_admin else 'student',
            is_admin=is_admin,
            openrouter_api_key=api_key,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def sign_in(client):
    def _sign_in(user: User) -> None:
        token = create_session_token({'id': user.id, 'email': user.email, 'name': user.name, 'provider': 'password'})
        client.cookies.set(settings.session_cookie_name, token)

    return _sign_in
