import asyncio

import httpx
import pytest
from fastapi import HTTPException

from edulearn.config import settings
from edulearn.llm.keys import (
    NO_KEY_MESSAGE, SOURCE_ENV, SOURCE_NONE, SOURCE_USER, require_api_key, resolve_api_key, validate_api_key,
)


def _openrouter(key_status: int = 200, models_status: int = 200, calls: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url.path)
        if request.url.path.endswith('/auth/key'):
            return httpx.Response(key_status, json={'data': {'label': 'sk-or-v1-abc', 'usage': 1.5, 'limit': None}})
        if request.url.path.endswith('/models'):
            return httpx.Response(models_status, json={'data': []})
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def test_environment_key_always_wins(db_session, make_user, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, 'openrouter_api_key', 'sk-or-server')
    user = make_user('haskey@edulearn.org', api_key='sk-or-personal')

    resolved = resolve_api_key(db_session, user.id)

    assert resolved.key == 'sk-or-server'
    assert resolved.source == SOURCE_ENV


def test_user_key_used_without_environment_key(db_session, make_user) -> None:
    user = make_user('haskey@edulearn.org', api_key='sk-or-personal')

    resolved = resolve_api_key(db_session, user.id)

    assert resolved.key == 'sk-or-personal'
    assert resolved.source == SOURCE_USER


def test_no_key_anywhere(db_session, make_user) -> None:
    user = make_user('nokey@edulearn.org')

    assert resolve_api_key(db_session, user.id).source == SOURCE_NONE
    assert resolve_api_key(db_session, None).source == SOURCE_NONE
    with pytest.raises(HTTPException) as exc:
        require_api_key(db_session, user.id)
    assert exc.value.status_code == 500
    assert exc.value.detail == NO_KEY_MESSAGE


def test_validate_rejects_wrong_prefix_without_network() -> None:
    calls = []
    with pytest.raises(HTTPException) as exc:
        asyncio.run(validate_api_key('sk-abc', _openrouter(calls=calls)))

    assert exc.value.status_code == 400
    assert exc.value.detail == 'Invalid OpenRouter API key format. Should start with "sk-or-"'
    assert calls == []


@pytest.mark.parametrize(
    ('key_status', 'models_status', 'detail'),
    [
        (401, 200, 'Invalid API key. Please check your OpenRouter API key.'),
        (402, 200, 'API key validation failed (402)'),
        (200, 403, 'API key cannot access OpenRouter models. Please check your permissions.'),
    ],
)
def test_validate_reports_provider_rejections(key_status: int, models_status: int, detail: str) -> None:
    with pytest.raises(HTTPException) as exc:
        asyncio.run(validate_api_key('sk-or-v1-abc', _openrouter(key_status, models_status)))

    assert exc.value.status_code == 400
    assert exc.value.detail == detail


def test_validate_reports_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    with pytest.raises(HTTPException) as exc:
        asyncio.run(validate_api_key('sk-or-v1-abc', httpx.MockTransport(handler)))

    assert exc.value.status_code == 500
    assert exc.value.detail == 'Failed to validate API key. Please check your internet connection and try again.'


def test_save_api_key_persists_only_after_validation(client, app, db_session, make_user, sign_in) -> None:
    user = make_user('saver@edulearn.org')
    sign_in(user)

    app.state.http_transport = _openrouter(key_status=401)
    rejected = client.post('/user/api-key', json={'api_key': 'sk-or-v1-bad'})
    db_session.refresh(user)

    assert rejected.status_code == 400
    assert user.openrouter_api_key is None

    app.state.http_transport = _openrouter()
    accepted = client.post('/user/api-key', json={'api_key': 'sk-or-v1-good'})
    db_session.refresh(user)

    assert accepted.status_code == 200
    assert accepted.json()['success'] is True
    assert accepted.json()['credits']['usage'] == 1.5
    assert user.openrouter_api_key == 'sk-or-v1-good'


def test_api_key_status_and_delete(client, db_session, make_user, sign_in) -> None:
    user = make_user('status@edulearn.org', api_key='sk-or-v1-mine')
    sign_in(user)

    status = client.get('/user/api-key-status')
    assert status.json() == {'source': 'user', 'has_user_key': True, 'has_env_key': False}

    assert client.delete('/user/api-key').status_code == 200
    db_session.refresh(user)
    assert user.openrouter_api_key is None
    assert client.get('/user/api-key-status').json()['source'] == 'none'


def test_admin_status_and_toggle(client, db_session, make_user) -> None:
    user = make_user('promote@edulearn.org')

    assert client.get('/user/admin-status', params={'email': user.email}).json() == {
        'is_admin': False,
        'email': 'promote@edulearn.org',
    }
    assert client.get('/user/admin-status', params={'email': 'ghost@edulearn.org'}).status_code == 404

    denied = client.post('/user/toggle-admin', json={'email': user.email, 'is_admin': True}, headers={'X-Admin-Key': 'wrong'})
    assert denied.status_code == 401

    response = client.post(
        '/user/toggle-admin',
        json={'email': user.email, 'is_admin': True},
        headers={'X-Admin-Key': 'test-admin-key'},
    )
    db_session.refresh(user)

    assert response.status_code == 200
    assert user.is_admin is True
