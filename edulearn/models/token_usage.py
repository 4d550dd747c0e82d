
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from edulearn.db.session import Base


class TokenUsage(Base):
    """Append-only ledger of provider tokens consumed per user."""
    __tablename__ = "token_usage"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tokens_used = Column(Integer, nullable=False)
    model = Column(String(255), nullable=False)
    request_type = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), index=True)
