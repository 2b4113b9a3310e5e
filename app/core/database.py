"""
Database configuration and session management
"""

from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool
import structlog

from app.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True}


engine = create_engine(
    settings.DATABASE_URL.replace("postgresql+asyncpg://", "postgresql+psycopg2://"),
    echo=False,
    **_engine_kwargs(settings.DATABASE_URL),
)


def init_db():
    """Initialize database tables"""
    # Register table models on the metadata
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


def get_session():
    """Dependency to get database session"""
    with Session(engine) as session:
        yield session
