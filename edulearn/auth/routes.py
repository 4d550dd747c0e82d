
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from edulearn.auth.deps import get_db, get_current_identity, get_current_user, require_admin_key
from edulearn.config import settings
from edulearn.models.user import User
from edulearn.schemas.auth import SignUpIn, SignInIn, AuthOut, CreateAdminIn
from edulearn.auth.service import register_user, authenticate_user, user_public
from edulearn.utils.security import create_session_token

router = APIRouter(prefix="/auth", tags=["auth"])

OAUTH_STATE_COOKIE = "oauth_state"


def set_session_cookie(response: Response, identity: dict):
    response.set_cookie(
        key=settings.session_cookie_name,
        value=create_session_token(identity),
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
        max_age=60 * 60 * 24 * settings.session_expire_days,
    )


def session_identity(user: User, provider: str = "password", picture: str | None = None) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "provider": provider,
        "picture": picture,
    }


@router.post("/signup", response_model=AuthOut, status_code=201)
def signup(body: SignUpIn, response: Response, db: Session = Depends(get_db)):
    user = register_user(db, body.email, body.password, body.name, body.openrouter_api_key)
    set_session_cookie(response, session_identity(user))
    return {"user": user_public(user), "message": "User created successfully"}


@router.post("/signin", response_model=AuthOut)
def signin(body: SignInIn, response: Response, db: Session = Depends(get_db)):
    user = authenticate_user(db, body.email, body.password)
    set_session_cookie(response, session_identity(user))
    return {"user": user_public(user), "message": "Sign in successful"}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.session_cookie_name, path="/")
    response.delete_cookie(OAUTH_STATE_COOKIE, path="/")
    return {"success": True}


@router.get("/current-user")
def current_user(
    user: User = Depends(get_current_user),
    identity: dict | None = Depends(get_current_identity),
):
    return {
        "user": user_public(user),
        "provider": (identity or {}).get("provider", "password"),
    }


@router.post("/create-admin", status_code=201, dependencies=[Depends(require_admin_key)])
def create_admin(body: CreateAdminIn, db: Session = Depends(get_db)):
    user = register_user(db, body.email, body.password, body.name, body.openrouter_api_key, is_admin=True)
    return {"success": True, "message": "Admin user created successfully", "user_id": user.id}
