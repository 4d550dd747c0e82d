import pytest
from sqlalchemy.exc import OperationalError

from edulearn.accounting.cache import TTLCache
from edulearn.accounting.service import TokenAccountant, default_status, is_missing_table_error
from edulearn.models.token_usage import TokenUsage


@pytest.fixture
def accountant(clock):
    return TokenAccountant(TTLCache(30, clock=clock), limit=10000)


def test_status_is_sum_of_recorded_usage(db_session, make_user, accountant) -> None:
    user = make_user('student@edulearn.org')
    for tokens in (120, 880, 1000):
        accountant.record_usage(db_session, user.id, tokens, 'meta-llama/llama-3.2-3b-instruct:free', 'homework_help')

    status = accountant.check_token_status(db_session, user.id)

    assert status.total_used == 2000
    assert status.remaining_tokens == 8000
    assert status.has_tokens is True
    assert status.limit == 10000


def test_remaining_is_clamped_at_zero(db_session, make_user, accountant) -> None:
    user = make_user('heavy@edulearn.org')
    accountant.record_usage(db_session, user.id, 9000, 'model-a', 'homework_help')
    accountant.record_usage(db_session, user.id, 2500, 'model-a', 'homework_help')

    status = accountant.check_token_status(db_session, user.id)

    assert status.total_used == 11500
    assert status.remaining_tokens == 0
    assert status.has_tokens is False


def test_new_usage_is_visible_immediately(db_session, make_user, accountant) -> None:
    user = make_user('fresh@edulearn.org')
    assert accountant.check_token_status(db_session, user.id).total_used == 0

    accountant.record_usage(db_session, user.id, 300, 'model-a', 'homework_help')

    assert accountant.check_token_status(db_session, user.id).total_used == 300


def test_status_is_cached_until_expiry(db_session, make_user, accountant, clock) -> None:
    user = make_user('cached@edulearn.org')
    accountant.check_token_status(db_session, user.id)

    # written behind the accountant's back, so the cached total is still served
    db_session.add(TokenUsage(user_id=user.id, tokens_used=500, model='model-a', request_type='homework_help'))
    db_session.commit()
    assert accountant.check_token_status(db_session, user.id).total_used == 0

    clock.advance(30)
    assert accountant.check_token_status(db_session, user.id).total_used == 500


def test_usage_breakdown_groups_by_model(db_session, make_user, accountant) -> None:
    user = make_user('breakdown@edulearn.org')
    accountant.record_usage(db_session, user.id, 100, 'model-a', 'homework_help')
    accountant.record_usage(db_session, user.id, 200, 'model-a', 'homework_help')
    accountant.record_usage(db_session, user.id, 50, 'model-b', 'homework_help')

    rows = {r['model']: r for r in accountant.usage_breakdown(db_session, user.id)}

    assert rows['model-a']['total_tokens'] == 300
    assert rows['model-a']['total_requests'] == 2
    assert rows['model-b']['total_tokens'] == 50


def test_default_status_is_full_quota() -> None:
    status = default_status(10000)

    assert status.as_dict() == {'total_used': 0, 'remaining_tokens': 10000, 'has_tokens': True, 'limit': 10000}


def test_missing_table_detection() -> None:
    sqlite_error = OperationalError('SELECT 1', {}, Exception('no such table: token_usage'))
    postgres_error = OperationalError('SELECT 1', {}, Exception('relation "token_usage" does not exist'))
    other_error = OperationalError('SELECT 1', {}, Exception('database is locked'))

    assert is_missing_table_error(sqlite_error) is True
    assert is_missing_table_error(postgres_error) is True
    assert is_missing_table_error(other_error) is False


def test_token_status_route_reports_usage(client, app, db_session, make_user, sign_in) -> None:
    user = make_user('route@edulearn.org')
    app.state.accountant.record_usage(db_session, user.id, 1500, 'model-a', 'homework_help')
    sign_in(user)

    response = client.get('/user/token-status')

    assert response.status_code == 200
    assert response.json() == {
        'total_used': 1500,
        'remaining': 8500,
        'has_tokens': True,
        'limit': 10000,
        'openrouter_credits': None,
    }


def test_token_routes_fall_back_to_defaults_without_ledger(client, engine, make_user, sign_in) -> None:
    user = make_user('bootstrap@edulearn.org')
    sign_in(user)
    TokenUsage.__table__.drop(bind=engine)

    status = client.get('/user/token-status')
    usage = client.get('/user/token-usage')

    assert status.status_code == 200
    assert status.json()['total_used'] == 0
    assert status.json()['remaining'] == 10000
    assert status.json()['has_tokens'] is True
    assert usage.status_code == 200
    assert usage.json() == {'total_used': 0, 'total_requests': 0, 'detailed_usage': [], 'remaining': 10000}


def test_token_status_requires_session(client) -> None:
    response = client.get('/user/token-status')

    assert response.status_code == 401
    assert response.json()['detail'] == 'User not authenticated'
