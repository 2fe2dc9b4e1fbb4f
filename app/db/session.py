from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import settings
from app.db.base import Base


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url,
                         connect_args={"connect_timeout": 30},
                         pool_pre_ping=True,
                         pool_recycle=3600,
    )


# Create the SQLAlchemy engine
engine = build_engine(settings.DATABASE_URL)

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency that can be used in routes to get the session
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    # models must be imported so their tables register on Base.metadata
    import app.models.platform_users  # noqa: F401

    Base.metadata.create_all(bind=bind)
