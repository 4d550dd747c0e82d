"""Google and Brightspace sign-in.

Both providers use the authorization-code flow: ``/auth/{provider}`` sends the
browser to the provider with a random ``state`` kept in a short-lived cookie,
and ``/auth/{provider}/callback`` checks that state, exchanges the code, loads
the profile and signs the user in locally. Every failure in the callback ends
in a redirect to the frontend sign-in page with an ``error`` reason.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Literal
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from edulearn.auth.deps import get_db, get_http_transport
from edulearn.auth.routes import OAUTH_STATE_COOKIE, session_identity, set_session_cookie
from edulearn.auth.service import get_or_create_oauth_user
from edulearn.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["oauth"])

STATE_MAX_AGE = 60 * 10
SCOPE = "openid email profile"

ProviderName = Literal["google", "brightspace"]


class OAuthCallbackError(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass
class OAuthProfile:
    email: str
    name: str | None
    picture: str | None = None


@dataclass
class OAuthProvider:
    name: str
    label: str
    client_id: str | None
    client_secret: str | None
    redirect_uri: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    parse_profile: Callable[[dict], OAuthProfile]

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorize_redirect(self, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": SCOPE,
            "state": state,
        })
        return f"{self.authorize_url}?{query}"


def _google_profile(data: dict) -> OAuthProfile:
    return OAuthProfile(email=data.get("email"), name=data.get("name"), picture=data.get("picture"))


def _brightspace_profile(data: dict) -> OAuthProfile:
    name = " ".join(p for p in (data.get("FirstName"), data.get("LastName")) if p) or None
    return OAuthProfile(email=data.get("Email"), name=name)


def get_provider(name: str) -> OAuthProvider:
    if name == "google":
        return OAuthProvider(
            name="google",
            label="Google",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_redirect_uri,
            authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",
            userinfo_url="https://www.googleapis.com/oauth2/v2/userinfo",
            parse_profile=_google_profile,
        )
    if name == "brightspace":
        return OAuthProvider(
            name="brightspace",
            label="Brightspace",
            client_id=settings.brightspace_client_id,
            client_secret=settings.brightspace_client_secret,
            redirect_uri=settings.brightspace_redirect_uri,
            authorize_url=settings.brightspace_auth_url,
            token_url=settings.brightspace_token_url,
            userinfo_url=f"{settings.brightspace_api_url.rstrip('/')}/d2l/api/lp/1.0/users/whoami",
            parse_profile=_brightspace_profile,
        )
    raise ValueError(f"Unknown OAuth provider: {name}")


def signin_error_url(reason: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/auth/signin?error={reason}"


async def fetch_profile(provider: OAuthProvider, code: str, transport=None) -> OAuthProfile:
    async with httpx.AsyncClient(timeout=15, transport=transport) as client:
        token_resp = await client.post(
            provider.token_url,
            data={
                "client_id": provider.client_id,
                "client_secret": provider.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": provider.redirect_uri,
            },
        )
        if not token_resp.is_success:
            logger.warning("%s token exchange failed with %s", provider.label, token_resp.status_code)
            raise OAuthCallbackError("token_exchange_failed")
        access_token = token_resp.json().get("access_token")
        if not access_token:
            raise OAuthCallbackError("token_exchange_failed")

        user_resp = await client.get(
            provider.userinfo_url,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not user_resp.is_success:
            logger.warning("%s profile lookup failed with %s", provider.label, user_resp.status_code)
            raise OAuthCallbackError("user_info_failed")

    profile = provider.parse_profile(user_resp.json())
    if not profile.email:
        raise OAuthCallbackError("user_info_failed")
    return profile


@router.get("/{provider_name}")
def oauth_start(provider_name: ProviderName):
    provider = get_provider(provider_name)
    if not provider.client_id:
        raise HTTPException(status_code=500, detail=f"{provider.label} OAuth not configured")
    state = secrets.token_urlsafe(16)
    response = RedirectResponse(provider.authorize_redirect(state), status_code=307)
    response.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
        max_age=STATE_MAX_AGE,
    )
    return response


@router.get("/{provider_name}/callback")
async def oauth_callback(
    provider_name: ProviderName,
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
    transport=Depends(get_http_transport),
):
    provider = get_provider(provider_name)
    try:
        if error:
            raise OAuthCallbackError("oauth_denied")
        stored_state = request.cookies.get(OAUTH_STATE_COOKIE)
        if not state or not stored_state or not secrets.compare_digest(state, stored_state):
            raise OAuthCallbackError("invalid_state")
        if not code:
            raise OAuthCallbackError("no_code")
        if not provider.configured:
            raise OAuthCallbackError("oauth_not_configured")

        profile = await fetch_profile(provider, code, transport)
        user = get_or_create_oauth_user(db, profile.email, profile.name)
    except OAuthCallbackError as exc:
        return RedirectResponse(signin_error_url(exc.reason), status_code=307)
    except Exception:
        logger.exception("%s OAuth callback failed", provider.label)
        return RedirectResponse(signin_error_url("callback_failed"), status_code=307)

    response = RedirectResponse(f"{settings.frontend_url.rstrip('/')}/", status_code=307)
    set_session_cookie(response, session_identity(user, provider=provider.name, picture=profile.picture))
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    logger.info("User %s signed in with %s", user.id, provider.label)
    return response
