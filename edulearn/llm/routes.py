import hashlib
import logging
from typing import Literal

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from edulearn.accounting.cache import TTLCache
from edulearn.accounting.service import TokenAccountant
from edulearn.auth.deps import (
    get_db, get_optional_user, get_accountant, get_http_transport, get_models_cache, require_admin_key,
)
from edulearn.config import settings
from edulearn.llm.catalog import (
    catalog_stats, free_active_models, model_out, query_models, recent_sync_logs, sync_health, sync_log_out,
    sync_models, synced_recently,
)
from edulearn.llm.client import OpenRouterClient, response_json
from edulearn.llm.keys import require_api_key
from edulearn.llm.proxy import forward_chat
from edulearn.models.user import User
from edulearn.schemas.chat import ChatIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/openrouter", tags=["openrouter"])


def models_cache_key(api_key: str) -> str:
    return "models_" + hashlib.sha256(api_key.encode()).hexdigest()


@router.post("/chat")
async def chat(
    body: ChatIn,
    request: Request,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
    accountant: TokenAccountant = Depends(get_accountant),
    transport=Depends(get_http_transport),
):
    api_key = require_api_key(db, user.id if user else None)
    return await forward_chat(
        body,
        db=db,
        user=user,
        api_key=api_key,
        accountant=accountant,
        transport=transport,
        referer=request.headers.get("origin"),
    )


@router.get("/models")
async def list_free_models(
    db: Session = Depends(get_db),
    user: User | None = Depends(get_optional_user),
    cache: TTLCache = Depends(get_models_cache),
    transport=Depends(get_http_transport),
):
    api_key = require_api_key(db, user.id if user else None)
    # keyed by credential: different keys may see different catalogs
    cache_key = models_cache_key(api_key)
    cached = cache.get(cache_key)
    if cached is not None:
        return {"data": cached, "cached": True}

    client = OpenRouterClient(api_key, transport=transport)
    try:
        resp = await client.list_models()
    except httpx.HTTPError:
        logger.exception("Failed to fetch models from OpenRouter")
        raise HTTPException(status_code=500, detail="Failed to fetch models")
    if not resp.is_success:
        raise HTTPException(status_code=resp.status_code, detail="Failed to fetch models from OpenRouter")

    data = response_json(resp).get("data")
    if not isinstance(data, list):
        raise HTTPException(status_code=500, detail="Models data is not in expected format")

    models = free_active_models(data)
    cache.set(cache_key, models)
    return {"data": models, "cached": False}


@router.post("/sync-models", dependencies=[Depends(require_admin_key)])
async def trigger_sync(
    db: Session = Depends(get_db),
    transport=Depends(get_http_transport),
):
    if synced_recently(db, settings.model_sync_cooldown_seconds):
        raise HTTPException(status_code=429, detail="Sync already completed recently")
    api_key = require_api_key(db, None)
    log = await sync_models(db, OpenRouterClient(api_key, transport=transport))
    if not log.success:
        raise HTTPException(status_code=502, detail=f"Model sync failed: {log.error}")
    return {
        "success": True,
        "message": "Models synced successfully",
        "stats": {
            "added": log.models_added,
            "updated": log.models_updated,
            "deprecated": log.models_deprecated,
        },
    }


@router.get("/sync-status", dependencies=[Depends(require_admin_key)])
def sync_status(db: Session = Depends(get_db)):
    logs = recent_sync_logs(db, 5)
    return {
        "health": sync_health(db, logs),
        "stats": catalog_stats(db),
        "recent_logs": [sync_log_out(log) for log in logs],
        "cooldown_active": synced_recently(db, settings.model_sync_cooldown_seconds),
    }


@router.get("/db-models")
def list_db_models(
    type: Literal["all", "free", "paid", "search"] = Query("all"),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
):
    if type == "search" and not (search and search.strip()):
        raise HTTPException(status_code=400, detail="Search query is required for type=search")
    models = query_models(db, type, search)
    return {
        "data": [model_out(m) for m in models],
        "stats": catalog_stats(db),
    }
