import logging

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from config.settings import get_settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """SQLite by default; any SQLAlchemy URL (e.g. Postgres) via DATABASE_URL."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url)


engine = build_engine(get_settings().database_url)


# ✅ Dependency to get DB session in routes
def get_session():
    with Session(engine) as session:
        yield session


# ✅ Function to create tables
def init_db(bind=None):
    import db.models  # noqa: F401  registers the tables on the metadata

    SQLModel.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ready")
