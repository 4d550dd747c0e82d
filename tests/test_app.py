import pytest
from sqlalchemy.exc import IntegrityError
from fastapi.testclient import TestClient

from edulearn.config import DEFAULT_SECRET, Settings, validate_runtime_config
from edulearn.db.seed import seed_catalog
from edulearn.db.session import commit
from edulearn.models.event import Event
from edulearn.models.resource import Resource
from edulearn.models.user import User


def test_root_and_health(client) -> None:
    assert client.get('/').json()['name'] == 'EduLearn'

    health = client.get('/health')

    assert health.status_code == 200
    assert health.json()['database'] == 'connected'
    assert health.json()['counts'] == {'users': 0, 'resources': 0, 'events': 0}
    assert health.json()['server_api_key'] is False


def test_health_reports_unavailable_database(client, engine) -> None:
    Resource.__table__.drop(bind=engine)

    response = client.get('/health')

    assert response.status_code == 503
    assert response.json()['database'] == 'unavailable'


def test_unhandled_errors_become_generic_500(app) -> None:
    @app.get('/boom')
    def boom():
        raise RuntimeError('secret internals')

    response = TestClient(app, raise_server_exceptions=False).get('/boom')

    assert response.status_code == 500
    assert response.json() == {'detail': 'Internal server error'}


def test_seed_catalog_only_fills_empty_tables(db_session) -> None:
    first = seed_catalog(db_session)
    second = seed_catalog(db_session)

    assert first == {'resources': 6, 'events': 6}
    assert second == {'resources': 0, 'events': 0}
    assert all(r.is_approved for r in db_session.query(Resource).all())
    assert db_session.query(Event).filter(Event.registered > Event.capacity).count() == 0


def test_production_requires_real_secret() -> None:
    with pytest.raises(RuntimeError):
        validate_runtime_config(Settings(APP_ENV='production', SECRET_KEY=DEFAULT_SECRET))

    validate_runtime_config(Settings(APP_ENV='production', SECRET_KEY='a-long-random-value'))


def test_commit_failure_leaves_session_usable(db_session) -> None:
    db_session.add(User(email='twin@edulearn.org', name='A', password_hash='x'))
    db_session.add(User(email='twin@edulearn.org', name='B', password_hash='x'))

    with pytest.raises(IntegrityError):
        commit(db_session)

    assert db_session.query(User).count() == 0
