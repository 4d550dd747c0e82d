"""Homework-help chat forwarded to OpenRouter.

Order of checks: per-IP rate limit (middleware), credential, token budget,
then the provider call. Usage is recorded from the provider's ``usage`` field
after a successful response only.
"""

import logging
import re

import httpx
from fastapi import HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from edulearn.accounting.service import TokenAccountant, TokenAccountingError
from edulearn.config import settings
from edulearn.llm.client import (
    OpenRouterClient, build_chat_payload, provider_error_message, response_json,
)
from edulearn.models.user import User
from edulearn.schemas.chat import ChatIn

logger = logging.getLogger(__name__)

REQUEST_TYPE = "homework_help"
DEFAULT_RETRY_AFTER = 60

_MODEL_NOT_FOUND = re.compile(
    r"not a valid model|model not found|no endpoints found|unknown model|invalid model",
    re.IGNORECASE,
)


def is_model_not_found(status_code: int, data: dict) -> bool:
    return status_code in (400, 404) and bool(_MODEL_NOT_FOUND.search(provider_error_message(data)))


def retry_after_seconds(resp: httpx.Response) -> int:
    raw = resp.headers.get("retry-after")
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER


def translate_provider_error(resp: httpx.Response, model: str) -> JSONResponse:
    data = response_json(resp)
    if resp.status_code == 429:
        wait = retry_after_seconds(resp)
        return JSONResponse(
            status_code=429,
            content={
                "detail": f"OpenRouter rate limit exceeded. Please wait {wait} seconds before trying again.",
                "retry_after": wait,
                "model": model,
                "suggestion": "Try using a different model or wait a moment before retrying.",
            },
            headers={"Retry-After": str(wait)},
        )
    if is_model_not_found(resp.status_code, data):
        fallback = settings.fallback_model
        return JSONResponse(
            status_code=400,
            content={
                "detail": f"Model '{model}' is not available on OpenRouter. Try '{fallback}' instead.",
                "model": model,
                "suggested_model": fallback,
            },
        )
    return JSONResponse(status_code=resp.status_code, content=data)


def record_usage_quietly(accountant: TokenAccountant, db: Session, user: User, data: dict, model: str) -> None:
    usage = data.get("usage")
    if not isinstance(usage, dict):
        return
    try:
        accountant.record_usage(db, user.id, int(usage.get("total_tokens") or 0), model, REQUEST_TYPE)
    except (TokenAccountingError, TypeError, ValueError):
        logger.exception("Failed to record token usage for user %s", user.id)


async def forward_chat(
    body: ChatIn,
    *,
    db: Session,
    user: User | None,
    api_key: str,
    accountant: TokenAccountant,
    transport: httpx.AsyncBaseTransport | None = None,
    referer: str | None = None,
):
    if user is not None:
        status = accountant.check_token_status(db, user.id)
        if not status.has_tokens:
            return JSONResponse(
                status_code=403,
                content={
                    "detail": "Token limit exceeded. You have used all your available tokens.",
                    "remaining_tokens": 0,
                },
            )

    model = body.model or settings.default_model
    payload = build_chat_payload(
        body.prompt,
        model,
        context=body.settings.context,
        temperature=body.settings.temperature,
        max_tokens=body.settings.max_tokens,
    )
    client = OpenRouterClient(api_key, transport=transport, referer=referer)

    try:
        resp = await client.chat_completions(payload)
    except httpx.HTTPError as exc:
        logger.warning("OpenRouter request failed for model %s: %s", model, exc)
        raise HTTPException(
            status_code=500,
            detail="Failed to contact OpenRouter. Please check your internet connection and try again.",
        )

    if not resp.is_success:
        logger.info("OpenRouter returned %s for model %s", resp.status_code, model)
        return translate_provider_error(resp, model)

    data = response_json(resp)
    if user is not None:
        record_usage_quietly(accountant, db, user, data, model)
    return data
