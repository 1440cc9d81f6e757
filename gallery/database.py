"""SQLite config store: engine, per-request sessions and table creation."""

from __future__ import annotations

from typing import Generator

from sqlmodel import Session, SQLModel, create_engine

from .config import DATA_DIR

DB_PATH = DATA_DIR / "gallery.db"

# Sessions are opened in FastAPI's threadpool, not the creating thread
engine = create_engine(f"sqlite:///{DB_PATH}", connect_args={"check_same_thread": False})


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session on the current engine."""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create the config table on a fresh database (WAL journal)."""
    from . import models  # noqa: F401  registers domain_configs

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL;")

    SQLModel.metadata.create_all(engine)
