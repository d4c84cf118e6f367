from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from pillminder.core.config import Settings, settings
from .base import Base


def build_engine(config: Settings = settings) -> Engine:
    if config.is_sqlite:
        # SQLite has no server-side pool; timer callbacks share it across threads
        return create_engine(
            config.SQLALCHEMY_DATABASE_URI,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        config.SQLALCHEMY_DATABASE_URI,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_recycle=config.DB_POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,    # Validate connections before use
        echo=False,            # Set to True for SQL logging
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


engine = build_engine()

SessionLocal = build_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    """Create every table registered on Base.metadata."""
    # Importing the models registers them with Base.metadata
    from pillminder import models  # noqa: F401

    Base.metadata.create_all(bind=bind)
