
from fastapi import Request, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from jose import JWTError
from edulearn.config import settings
from edulearn.db.session import SessionLocal
from edulearn.utils.security import decode_session_token
from edulearn.models.user import User


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_identity(request: Request) -> dict | None:
    """Claims of a valid session cookie, or None for anonymous callers."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None
    try:
        payload = decode_session_token(token)
    except JWTError:
        return None
    if not payload.get("sub") or not payload.get("email"):
        return None
    return payload


def get_current_user(
    identity: dict | None = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> User:
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not authenticated",
        )
    try:
        user_id = int(identity["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid user session")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_optional_user(
    identity: dict | None = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> User | None:
    if identity is None:
        return None
    try:
        return db.get(User, int(identity["sub"]))
    except (TypeError, ValueError):
        return None


def require_admin_key(x_admin_key: str | None = Header(default=None)) -> None:
    if not settings.admin_api_key:
        raise HTTPException(status_code=503, detail="ADMIN_API_KEY not configured.")
    if not x_admin_key or x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=401, detail="Unauthorized.")


def get_http_transport(request: Request):
    """Outbound transport override; None means httpx's default network transport."""
    return getattr(request.app.state, "http_transport", None)


def get_accountant(request: Request):
    return request.app.state.accountant


def get_models_cache(request: Request):
    return request.app.state.models_cache
