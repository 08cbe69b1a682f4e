#control_panel\infrastructure\postgres\database.py

"""Engine, declarative base and session factories for the panel database."""

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from control_panel.infrastructure.postgres.config import settings


Base = declarative_base()


# ============================================
# Engine
# ============================================
def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """Build the engine for PostgreSQL (pooled) or SQLite (single shared connection)."""

    url = database_url or settings.url

    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.echo_sql,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    engine = create_engine(
        url,
        echo=settings.echo_sql,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
    )

    @event.listens_for(engine, "connect")
    def set_search_path(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("SET search_path TO public")
        cursor.close()

    return engine


engine = create_db_engine()


def get_session_factory(engine_instance: Optional[Engine] = None) -> sessionmaker:
    """Session factory bound to engine_instance (the global engine when omitted)."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine_instance or engine,
        expire_on_commit=False,
    )


SessionLocal = get_session_factory()


def init_db(engine_instance: Optional[Engine] = None) -> None:
    """Create missing tables. Schema changes go through alembic."""
    from control_panel.infrastructure.postgres import models  # noqa: F401

    Base.metadata.create_all(bind=engine_instance or engine)
