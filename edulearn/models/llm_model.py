"""Local mirror of the provider's model catalog."""

from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, Text, DateTime
from edulearn.db.session import Base


class LLMModel(Base):
    __tablename__ = "llm_models"
    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    context_length = Column(Integer, default=0)
    pricing_prompt = Column(String(50), default="0")
    pricing_completion = Column(String(50), default="0")
    architecture_modality = Column(String(100))
    architecture_tokenizer = Column(String(100))
    top_provider_is_moderated = Column(Boolean, default=False)
    is_free = Column(Boolean, default=False, index=True)
    deprecated = Column(Boolean, default=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ModelSyncLog(Base):
    __tablename__ = "model_sync_logs"
    id = Column(Integer, primary_key=True)
    success = Column(Boolean, nullable=False)
    models_added = Column(Integer, default=0)
    models_updated = Column(Integer, default=0)
    models_deprecated = Column(Integer, default=0)
    error = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
