from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from edulearn.config import settings
from edulearn.models.user import User
from edulearn.utils.security import decode_session_token


@pytest.fixture
def google_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, 'google_client_id', 'google-client')
    monkeypatch.setattr(settings, 'google_client_secret', 'google-secret')


def _google_transport(token_status: int = 200, profile_status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == 'oauth2.googleapis.com':
            assert b'grant_type=authorization_code' in request.content
            return httpx.Response(token_status, json={'access_token': 'google-access'})
        if request.url.host == 'www.googleapis.com':
            assert request.headers['authorization'] == 'Bearer google-access'
            return httpx.Response(
                profile_status,
                json={'id': '42', 'email': 'Learner@edulearn.org', 'name': 'Lee Learner', 'picture': 'https://img/42'},
            )
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def test_start_redirects_with_state_cookie(client, google_configured) -> None:
    response = client.get('/auth/google', follow_redirects=False)

    assert response.status_code == 307
    location = urlparse(response.headers['location'])
    query = parse_qs(location.query)
    assert location.netloc == 'accounts.google.com'
    assert query['client_id'] == ['google-client']
    assert query['response_type'] == ['code']
    assert query['state'] == [response.cookies['oauth_state']]


def test_start_without_client_id_is_an_error(client) -> None:
    response = client.get('/auth/brightspace', follow_redirects=False)

    assert response.status_code == 500
    assert response.json()['detail'] == 'Brightspace OAuth not configured'


def test_unknown_provider_is_not_routed(client) -> None:
    assert client.get('/auth/github', follow_redirects=False).status_code == 422


@pytest.mark.parametrize(
    ('query', 'cookie_state', 'reason'),
    [
        ('error=access_denied', 'abc', 'oauth_denied'),
        ('code=xyz&state=abc', None, 'invalid_state'),
        ('code=xyz&state=abc', 'other', 'invalid_state'),
        ('state=abc', 'abc', 'no_code'),
    ],
)
def test_callback_rejections_redirect_to_signin(client, google_configured, query: str, cookie_state, reason: str) -> None:
    if cookie_state:
        client.cookies.set('oauth_state', cookie_state)

    response = client.get(f'/auth/google/callback?{query}', follow_redirects=False)

    assert response.status_code == 307
    assert response.headers['location'] == f'http://localhost:3000/auth/signin?error={reason}'


def test_callback_without_secret_reports_not_configured(client) -> None:
    client.cookies.set('oauth_state', 'abc')

    response = client.get('/auth/google/callback?code=xyz&state=abc', follow_redirects=False)

    assert response.headers['location'].endswith('error=oauth_not_configured')


@pytest.mark.parametrize(
    ('token_status', 'profile_status', 'reason'),
    [(400, 200, 'token_exchange_failed'), (200, 401, 'user_info_failed')],
)
def test_callback_provider_failures(client, app, google_configured, token_status: int, profile_status: int, reason: str) -> None:
    app.state.http_transport = _google_transport(token_status, profile_status)
    client.cookies.set('oauth_state', 'abc')

    response = client.get('/auth/google/callback?code=xyz&state=abc', follow_redirects=False)

    assert response.headers['location'].endswith(f'error={reason}')


def test_callback_signs_in_and_creates_local_user(client, app, db_session, google_configured) -> None:
    app.state.http_transport = _google_transport()
    client.cookies.set('oauth_state', 'abc')

    response = client.get('/auth/google/callback?code=xyz&state=abc', follow_redirects=False)

    assert response.status_code == 307
    assert response.headers['location'] == 'http://localhost:3000/'

    user = db_session.query(User).filter(User.email == 'learner@edulearn.org').one()
    assert user.name == 'Lee Learner'

    claims = decode_session_token(response.cookies[settings.session_cookie_name])
    assert claims['sub'] == str(user.id)
    assert claims['provider'] == 'google'
    assert claims['picture'] == 'https://img/42'
