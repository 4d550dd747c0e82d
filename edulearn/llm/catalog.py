"""Mirror of the provider's model list.

Refreshing is triggered from the admin endpoint; there is no scheduler here.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from edulearn.db.session import commit
from edulearn.llm.client import OpenRouterClient, response_json
from edulearn.models.llm_model import LLMModel, ModelSyncLog

logger = logging.getLogger(__name__)


class ModelSyncError(Exception):
    pass


def is_free_pricing(pricing: dict | None) -> bool:
    if not pricing:
        return True
    return str(pricing.get("prompt", "0")) == "0" and str(pricing.get("completion", "0")) == "0"


def free_active_models(raw_models: list) -> list[dict]:
    """Free, active, well-formed models from a provider ``/models`` payload, sorted by name."""
    out = []
    for m in raw_models:
        if not isinstance(m, dict):
            continue
        if not isinstance(m.get("id"), str) or not isinstance(m.get("name"), str):
            continue
        if not is_free_pricing(m.get("pricing")):
            continue
        if m.get("deprecated") or m.get("status", "active") != "active":
            continue
        out.append({
            "id": m["id"],
            "name": m["name"],
            "description": m.get("description") or "No description available",
            "context_length": m.get("context_length") or 0,
            "pricing": m.get("pricing") or {"prompt": "0", "completion": "0"},
            "architecture": m.get("architecture") or {"modality": "text", "tokenizer": "unknown"},
            "top_provider": m.get("top_provider") or {"is_moderated": False},
            "tags": m.get("tags") if isinstance(m.get("tags"), list) else [],
        })
    out.sort(key=lambda item: item["name"].lower())
    return out


def _apply(row: LLMModel, m: dict) -> None:
    pricing = m.get("pricing") or {}
    architecture = m.get("architecture") or {}
    top_provider = m.get("top_provider") or {}
    row.name = m.get("name") or m["id"]
    row.description = m.get("description")
    row.context_length = m.get("context_length") or 0
    row.pricing_prompt = str(pricing.get("prompt", "0"))
    row.pricing_completion = str(pricing.get("completion", "0"))
    row.architecture_modality = architecture.get("modality")
    row.architecture_tokenizer = architecture.get("tokenizer")
    row.top_provider_is_moderated = bool(top_provider.get("is_moderated"))
    row.is_free = is_free_pricing(pricing)
    row.deprecated = False
    row.last_updated = datetime.utcnow()


def upsert_models(db: Session, raw_models: list) -> dict:
    seen = set()
    added = updated = 0
    for m in raw_models:
        if not isinstance(m, dict) or not isinstance(m.get("id"), str):
            continue
        seen.add(m["id"])
        row = db.get(LLMModel, m["id"])
        if row is None:
            row = LLMModel(id=m["id"])
            db.add(row)
            added += 1
        else:
            updated += 1
        _apply(row, m)

    deprecated = 0
    stale = db.query(LLMModel).filter(LLMModel.deprecated.is_(False))
    if seen:
        stale = stale.filter(LLMModel.id.notin_(seen))
    for row in stale.all():
        row.deprecated = True
        deprecated += 1
    return {"added": added, "updated": updated, "deprecated": deprecated}


async def sync_models(db: Session, client: OpenRouterClient) -> ModelSyncLog:
    try:
        resp = await client.list_models()
        if not resp.is_success:
            raise ModelSyncError(f"OpenRouter returned {resp.status_code}")
        data = response_json(resp).get("data")
        if not isinstance(data, list):
            raise ModelSyncError("Models data is not in expected format")
        counts = upsert_models(db, data)
        log = ModelSyncLog(
            success=True,
            models_added=counts["added"],
            models_updated=counts["updated"],
            models_deprecated=counts["deprecated"],
        )
    except Exception as exc:
        db.rollback()
        logger.exception("Model sync failed")
        log = ModelSyncLog(success=False, error=str(exc))
    db.add(log)
    commit(db)
    db.refresh(log)
    return log


def last_successful_sync(db: Session) -> ModelSyncLog | None:
    return (
        db.query(ModelSyncLog)
        .filter(ModelSyncLog.success.is_(True))
        .order_by(ModelSyncLog.created_at.desc(), ModelSyncLog.id.desc())
        .first()
    )


def synced_recently(db: Session, cooldown_seconds: int, now: datetime | None = None) -> bool:
    last = last_successful_sync(db)
    if last is None or last.created_at is None:
        return False
    return (now or datetime.utcnow()) - last.created_at < timedelta(seconds=cooldown_seconds)


def query_models(db: Session, kind: str = "all", search: str | None = None) -> list[LLMModel]:
    q = db.query(LLMModel).filter(LLMModel.deprecated.is_(False))
    if kind == "free":
        q = q.filter(LLMModel.is_free.is_(True))
    elif kind == "paid":
        q = q.filter(LLMModel.is_free.is_(False))
    elif kind == "search" and search and search.strip():
        term = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(LLMModel.id).like(term),
            func.lower(LLMModel.name).like(term),
            func.lower(func.coalesce(LLMModel.description, "")).like(term),
        ))
    return q.order_by(LLMModel.name.asc()).all()


def catalog_stats(db: Session) -> dict:
    active = db.query(LLMModel).filter(LLMModel.deprecated.is_(False))
    total = active.count()
    free = active.filter(LLMModel.is_free.is_(True)).count()
    last = last_successful_sync(db)
    return {
        "total": total,
        "free": free,
        "paid": total - free,
        "last_sync": last.created_at.isoformat() if last and last.created_at else None,
    }


def model_out(row: LLMModel) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "description": row.description,
        "context_length": row.context_length,
        "pricing": {"prompt": row.pricing_prompt, "completion": row.pricing_completion},
        "architecture": {
            "modality": row.architecture_modality,
            "tokenizer": row.architecture_tokenizer,
        },
        "top_provider": {"is_moderated": bool(row.top_provider_is_moderated)},
        "is_free": bool(row.is_free),
        "deprecated": bool(row.deprecated),
        "last_updated": row.last_updated.isoformat() if row.last_updated else None,
    }


def recent_sync_logs(db: Session, limit: int = 5) -> list[ModelSyncLog]:
    return (
        db.query(ModelSyncLog)
        .order_by(ModelSyncLog.created_at.desc(), ModelSyncLog.id.desc())
        .limit(limit)
        .all()
    )


def sync_health(db: Session, logs: list[ModelSyncLog] | None = None) -> dict:
    """``never_synced`` until the first attempt, then ``healthy`` or ``failing`` by the latest attempt."""
    logs = recent_sync_logs(db) if logs is None else logs
    last = last_successful_sync(db)
    if not logs:
        status = "never_synced"
    else:
        status = "healthy" if logs[0].success else "failing"
    return {
        "status": status,
        "last_attempt": logs[0].created_at.isoformat() if logs and logs[0].created_at else None,
        "last_success": last.created_at.isoformat() if last and last.created_at else None,
        "recent_failures": sum(1 for log in logs if not log.success),
    }


def sync_log_out(log: ModelSyncLog) -> dict:
    return {
        "id": log.id,
        "success": bool(log.success),
        "models_added": log.models_added or 0,
        "models_updated": log.models_updated or 0,
        "models_deprecated": log.models_deprecated or 0,
        "error": log.error,
        "created_at": log.created_at.isoformat() if log.created_at else None,
    }
