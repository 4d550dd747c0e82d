"""Per-user token budget on top of the ``token_usage`` ledger."""

import logging
from dataclasses import dataclass, asdict

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from edulearn.accounting.cache import TTLCache
from edulearn.models.token_usage import TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIMIT = 10000


class TokenAccountingError(Exception):
    pass


@dataclass
class TokenStatus:
    total_used: int
    remaining_tokens: int
    has_tokens: bool
    limit: int

    def as_dict(self) -> dict:
        return asdict(self)


def default_status(limit: int = DEFAULT_TOKEN_LIMIT) -> TokenStatus:
    return TokenStatus(total_used=0, remaining_tokens=limit, has_tokens=True, limit=limit)


def is_missing_table_error(exc: Exception) -> bool:
    """True when the ledger has not been created yet (fresh database)."""
    text = str(getattr(exc, "orig", exc)).lower()
    return "no such table" in text or ("relation" in text and "does not exist" in text)


class TokenAccountant:
    def __init__(self, cache: TTLCache, limit: int = DEFAULT_TOKEN_LIMIT):
        self.cache = cache
        self.limit = limit

    @staticmethod
    def _cache_key(user_id: int) -> str:
        return f"token_status_{user_id}"

    def record_usage(self, db: Session, user_id: int, tokens_used: int, model: str, request_type: str) -> TokenUsage:
        row = TokenUsage(
            user_id=user_id,
            tokens_used=int(tokens_used),
            model=model,
            request_type=request_type,
        )
        db.add(row)
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise TokenAccountingError(f"Failed to record token usage for user {user_id}") from exc
        db.refresh(row)
        # a fresh write must not be hidden behind a cached total
        self.cache.delete(self._cache_key(user_id))
        return row

    def total_used(self, db: Session, user_id: int) -> int:
        total = (
            db.query(func.coalesce(func.sum(TokenUsage.tokens_used), 0))
            .filter(TokenUsage.user_id == user_id)
            .scalar()
        )
        return int(total or 0)

    def check_token_status(self, db: Session, user_id: int) -> TokenStatus:
        key = self._cache_key(user_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        used = self.total_used(db, user_id)
        status = TokenStatus(
            total_used=used,
            remaining_tokens=max(0, self.limit - used),
            has_tokens=used < self.limit,
            limit=self.limit,
        )
        self.cache.set(key, status)
        return status

    def usage_breakdown(self, db: Session, user_id: int) -> list[dict]:
        day = func.date(TokenUsage.created_at)
        rows = (
            db.query(
                func.sum(TokenUsage.tokens_used).label("total_tokens"),
                func.count(TokenUsage.id).label("total_requests"),
                TokenUsage.model.label("model"),
                day.label("date"),
            )
            .filter(TokenUsage.user_id == user_id)
            .group_by(TokenUsage.model, day)
            .order_by(day.desc())
            .all()
        )
        return [
            {
                "total_tokens": int(r.total_tokens or 0),
                "total_requests": int(r.total_requests or 0),
                "model": r.model,
                "date": str(r.date) if r.date is not None else None,
            }
            for r in rows
        ]

    def stats(self) -> dict:
        return {"token_cache_entries": len(self.cache)}
