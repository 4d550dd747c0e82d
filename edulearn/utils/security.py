
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from jose import jwt
from edulearn.config import settings

pwd_context = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_session_token(identity: dict, expires_days: int | None = None) -> str:
    """Signed session token for the cookie, expiring after ``expires_days``.

    ``identity`` must carry ``id`` and ``email``; ``name``, ``provider`` and
    ``picture`` are copied when present.
    """
    expire = datetime.now(timezone.utc) + timedelta(days=expires_days or settings.session_expire_days)
    claims = {
        "sub": str(identity["id"]),
        "email": identity["email"],
        "exp": expire,
    }
    for key in ("name", "provider", "picture"):
        if identity.get(key):
            claims[key] = identity[key]
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
