
import logging
import secrets

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from edulearn.db.session import commit
from edulearn.models.user import User
from edulearn.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def find_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def is_user_admin_by_email(db: Session, email: str | None) -> bool:
    if not email:
        return False
    user = find_user_by_email(db, email)
    return bool(user and user.is_admin)


def user_public(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "is_admin": bool(user.is_admin),
        "has_api_key": bool(user.openrouter_api_key),
        "created_at": user.created_at,
    }


def register_user(
    db: Session,
    email: str,
    password: str,
    name: str,
    openrouter_api_key: str | None = None,
    is_admin: bool = False,
) -> User:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters long")
    if find_user_by_email(db, email):
        raise HTTPException(status_code=409, detail="User with this email already exists")
    user = User(
        email=normalize_email(email),
        name=name.strip(),
        password_hash=hash_password(password),
        openrouter_api_key=openrouter_api_key or None,
        is_admin=is_admin,
        role="admin" if is_admin else "student",
    )
    db.add(user)
    try:
        commit(db)
    except IntegrityError:
        # lost a race against another signup for the same address
        raise HTTPException(status_code=409, detail="User with this email already exists")
    db.refresh(user)
    logger.info("Registered user %s (admin=%s)", user.id, is_admin)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = find_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return user


def get_or_create_oauth_user(db: Session, email: str, name: str | None) -> User:
    """Local account for an identity-provider login.

    The stored password is a random secret nobody knows, so the account can
    only be used through the provider until the user sets one.
    """
    user = find_user_by_email(db, email)
    if user:
        return user
    user = User(
        email=normalize_email(email),
        name=(name or email.split("@")[0]).strip(),
        password_hash=hash_password(secrets.token_urlsafe(32)),
        role="student",
    )
    db.add(user)
    commit(db)
    db.refresh(user)
    logger.info("Created local account %s for OAuth login", user.id)
    return user


def set_admin_status(db: Session, email: str, is_admin: bool) -> User:
    user = find_user_by_email(db, email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    user.is_admin = is_admin
    user.role = "admin" if is_admin else "student"
    commit(db)
    db.refresh(user)
    return user


def update_api_key(db: Session, user: User, api_key: str | None) -> User:
    user.openrouter_api_key = api_key
    commit(db)
    db.refresh(user)
    return user
