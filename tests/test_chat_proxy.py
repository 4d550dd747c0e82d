import json

import httpx
import pytest

from edulearn.accounting.service import TokenAccountingError
from edulearn.config import settings
from edulearn.models.token_usage import TokenUsage


@pytest.fixture
def server_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, 'openrouter_api_key', 'sk-or-server')


def _provider(status: int, body: dict, headers: dict | None = None, seen: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body, headers=headers or {})

    return httpx.MockTransport(handler)


COMPLETION = {
    'id': 'gen-1',
    'choices': [{'message': {'role': 'assistant', 'content': 'Photosynthesis turns light into sugar.'}}],
    'usage': {'prompt_tokens': 20, 'completion_tokens': 100, 'total_tokens': 120},
}


def test_forwards_prompt_and_records_usage(client, app, db_session, make_user, sign_in, server_key) -> None:
    user = make_user('asker@edulearn.org', api_key='sk-or-personal')
    sign_in(user)
    seen = []
    app.state.http_transport = _provider(200, COMPLETION, seen=seen)

    response = client.post(
        '/openrouter/chat',
        json={'prompt': 'What is photosynthesis?', 'settings': {'context': 'You are a biology tutor.'}},
        headers={'Origin': 'http://localhost:3000'},
    )

    assert response.status_code == 200
    assert response.json() == COMPLETION

    sent = json.loads(seen[0].content)
    assert seen[0].headers['authorization'] == 'Bearer sk-or-server'
    assert seen[0].headers['http-referer'] == 'http://localhost:3000'
    assert sent['model'] == settings.default_model
    assert sent['messages'] == [
        {'role': 'system', 'content': 'You are a biology tutor.'},
        {'role': 'user', 'content': 'What is photosynthesis?'},
    ]
    assert sent['temperature'] == 0.7
    assert sent['max_tokens'] == 2000

    rows = db_session.query(TokenUsage).filter(TokenUsage.user_id == user.id).all()
    assert [(r.tokens_used, r.request_type) for r in rows] == [(120, 'homework_help')]


def test_anonymous_chat_is_not_recorded(client, app, db_session, server_key) -> None:
    app.state.http_transport = _provider(200, COMPLETION)

    response = client.post('/openrouter/chat', json={'prompt': 'hi'})

    assert response.status_code == 200
    assert db_session.query(TokenUsage).count() == 0


def test_exhausted_budget_is_refused_before_forwarding(client, app, db_session, make_user, sign_in, server_key) -> None:
    user = make_user('spent@edulearn.org')
    app.state.accountant.record_usage(db_session, user.id, 10000, 'model-a', 'homework_help')
    sign_in(user)
    seen = []
    app.state.http_transport = _provider(200, COMPLETION, seen=seen)

    response = client.post('/openrouter/chat', json={'prompt': 'hi'})

    assert response.status_code == 403
    assert response.json() == {
        'detail': 'Token limit exceeded. You have used all your available tokens.',
        'remaining_tokens': 0,
    }
    assert seen == []


def test_missing_key_is_reported(client) -> None:
    response = client.post('/openrouter/chat', json={'prompt': 'hi'})

    assert response.status_code == 500
    assert response.json()['detail'].startswith('No OpenRouter API key configured')


def test_provider_rate_limit_is_translated(client, app, server_key) -> None:
    app.state.http_transport = _provider(429, {'error': {'message': 'Rate limit exceeded'}}, headers={'Retry-After': '12'})

    response = client.post('/openrouter/chat', json={'prompt': 'hi', 'model': 'mistral/free'})

    assert response.status_code == 429
    assert response.headers['retry-after'] == '12'
    assert response.json()['retry_after'] == 12
    assert response.json()['model'] == 'mistral/free'
    assert response.json()['detail'] == 'OpenRouter rate limit exceeded. Please wait 12 seconds before trying again.'


def test_provider_rate_limit_defaults_to_sixty_seconds(client, app, server_key) -> None:
    app.state.http_transport = _provider(429, {'error': {'message': 'slow down'}})

    response = client.post('/openrouter/chat', json={'prompt': 'hi'})

    assert response.json()['retry_after'] == 60


def test_unknown_model_suggests_fallback(client, app, server_key) -> None:
    app.state.http_transport = _provider(400, {'error': {'message': 'gone/model is not a valid model ID'}})

    response = client.post('/openrouter/chat', json={'prompt': 'hi', 'model': 'gone/model'})

    assert response.status_code == 400
    assert response.json()['suggested_model'] == settings.fallback_model
    assert response.json()['detail'] == (
        f"Model 'gone/model' is not available on OpenRouter. Try '{settings.fallback_model}' instead."
    )


def test_other_provider_errors_pass_through(client, app, server_key) -> None:
    body = {'error': {'message': 'Insufficient credits', 'code': 402}}
    app.state.http_transport = _provider(402, body)

    response = client.post('/openrouter/chat', json={'prompt': 'hi'})

    assert response.status_code == 402
    assert response.json() == body


def test_transport_failure_is_a_generic_error(client, app, server_key) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout('timed out', request=request)

    app.state.http_transport = httpx.MockTransport(handler)

    response = client.post('/openrouter/chat', json={'prompt': 'hi'})

    assert response.status_code == 500
    assert response.json()['detail'] == 'Failed to contact OpenRouter. Please check your internet connection and try again.'


def test_usage_recording_failure_does_not_fail_request(client, app, make_user, sign_in, server_key, monkeypatch) -> None:
    user = make_user('flaky@edulearn.org')
    sign_in(user)
    app.state.http_transport = _provider(200, COMPLETION)

    def broken(*args, **kwargs):
        raise TokenAccountingError('ledger unavailable')

    monkeypatch.setattr(app.state.accountant, 'record_usage', broken)

    response = client.post('/openrouter/chat', json={'prompt': 'hi'})

    assert response.status_code == 200
    assert response.json() == COMPLETION


def test_empty_prompt_is_rejected(client, server_key) -> None:
    assert client.post('/openrouter/chat', json={'prompt': ''}).status_code == 422
