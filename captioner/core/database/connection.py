# File: captioner/core/database/connection.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy_utils import database_exists, create_database
from captioner.core.config.settings import settings
from .base import Base

# check_same_thread=False is needed only for SQLite; recognizer work runs in worker threads
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(target_engine=None):
    """
    Creates the database (if the backend needs it) and all registered tables.
    """
    target_engine = target_engine or engine
    if target_engine is engine:
        settings.ensure_dirs()

    if not database_exists(target_engine.url):
        create_database(target_engine.url)

    # Register models on the shared Base before create_all
    import captioner.features.audio_analysis.data.sql_models  # noqa: F401
    Base.metadata.create_all(bind=target_engine)

