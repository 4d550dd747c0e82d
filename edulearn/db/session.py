import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase
from edulearn.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def normalize_url(url: str) -> str:
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


url = normalize_url(settings.database_url)

connect_args = {}
if url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    url,
    connect_args=connect_args,
    pool_pre_ping=True,
    future=True,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def init_db(bind=None):
    from edulearn.models import user, token_usage, resource, event, llm_model  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema ready (%s)", (bind or engine).dialect.name)


def commit(db: Session) -> None:
    """Commit, rolling the session back before re-raising on failure."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
