from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from lash_studio.core.config import settings

connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session for the duration of a request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create tables that do not exist yet (migrations remain the source of truth)"""
    from lash_studio.models import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
