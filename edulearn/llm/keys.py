"""Which credential pays for a provider call.

The server-wide key always wins over a user's stored key; the stored key is
used only when no server key is configured.
"""

import logging
from dataclasses import dataclass

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from edulearn.config import settings
from edulearn.llm.client import OpenRouterClient, response_json
from edulearn.models.user import User

logger = logging.getLogger(__name__)

SOURCE_ENV = "environment"
SOURCE_USER = "user"
SOURCE_NONE = "none"

NO_KEY_MESSAGE = "No OpenRouter API key configured. Please add your API key in your profile settings."


@dataclass
class ResolvedKey:
    key: str | None
    source: str


def resolve_api_key(db: Session, user_id: int | None) -> ResolvedKey:
    env_key = settings.openrouter_api_key
    if env_key:
        return ResolvedKey(env_key, SOURCE_ENV)
    if user_id is not None:
        user = db.get(User, user_id)
        if user is not None and user.openrouter_api_key:
            return ResolvedKey(user.openrouter_api_key, SOURCE_USER)
    return ResolvedKey(None, SOURCE_NONE)


def require_api_key(db: Session, user_id: int | None) -> str:
    resolved = resolve_api_key(db, user_id)
    if resolved.key is None:
        raise HTTPException(status_code=500, detail=NO_KEY_MESSAGE)
    return resolved.key


KEY_PREFIX = "sk-or-"


async def validate_api_key(api_key: str, transport=None) -> dict | None:
    """Check a user-supplied key against the provider; returns its credit info.

    Raises 400 for a key the provider rejects and 500 when the provider could
    not be reached. Nothing is persisted here.
    """
    if not api_key.startswith(KEY_PREFIX):
        raise HTTPException(
            status_code=400,
            detail='Invalid OpenRouter API key format. Should start with "sk-or-"',
        )
    client = OpenRouterClient(api_key, transport=transport)
    try:
        info = await client.key_info()
        if info.status_code == 401:
            raise HTTPException(status_code=400, detail="Invalid API key. Please check your OpenRouter API key.")
        if not info.is_success:
            raise HTTPException(status_code=400, detail=f"API key validation failed ({info.status_code})")
        models = await client.list_models()
    except httpx.HTTPError as exc:
        logger.warning("API key validation could not reach OpenRouter: %s", exc)
        raise HTTPException(
            status_code=500,
            detail="Failed to validate API key. Please check your internet connection and try again.",
        )
    if not models.is_success:
        raise HTTPException(
            status_code=400,
            detail="API key cannot access OpenRouter models. Please check your permissions.",
        )
    data = response_json(info).get("data")
    return data if isinstance(data, dict) else None
