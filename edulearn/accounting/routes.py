import logging

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from edulearn.accounting.service import TokenAccountant, default_status, is_missing_table_error
from edulearn.auth.deps import get_db, get_current_user, get_accountant, get_http_transport
from edulearn.llm.client import OpenRouterClient, response_json
from edulearn.llm.keys import resolve_api_key
from edulearn.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


async def fetch_credits(api_key: str | None, transport=None) -> dict | None:
    if not api_key:
        return None
    try:
        resp = await OpenRouterClient(api_key, transport=transport).key_info()
    except httpx.HTTPError as exc:
        logger.warning("Could not fetch OpenRouter credits: %s", exc)
        return None
    if not resp.is_success:
        return None
    data = response_json(resp).get("data")
    return data if isinstance(data, dict) else None


@router.get("/token-status")
async def token_status(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    accountant: TokenAccountant = Depends(get_accountant),
    transport=Depends(get_http_transport),
):
    try:
        status = accountant.check_token_status(db, user.id)
    except (OperationalError, ProgrammingError) as exc:
        if not is_missing_table_error(exc):
            raise
        db.rollback()
        logger.warning("token_usage table missing; reporting default budget")
        status = default_status(accountant.limit)

    credits = await fetch_credits(resolve_api_key(db, user.id).key, transport)
    return {
        "total_used": status.total_used,
        "remaining": status.remaining_tokens,
        "has_tokens": status.has_tokens,
        "limit": status.limit,
        "openrouter_credits": credits,
    }


@router.get("/token-usage")
def token_usage(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    accountant: TokenAccountant = Depends(get_accountant),
):
    try:
        rows = accountant.usage_breakdown(db, user.id)
    except (OperationalError, ProgrammingError) as exc:
        if not is_missing_table_error(exc):
            raise
        db.rollback()
        rows = []

    total_used = sum(r["total_tokens"] for r in rows)
    return {
        "total_used": total_used,
        "total_requests": sum(r["total_requests"] for r in rows),
        "detailed_usage": rows,
        "remaining": max(0, accountant.limit - total_used),
    }
