"""Database configuration and session helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from .config import DATABASE_URL

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    """Create an engine, preparing the data directory for file-backed SQLite."""

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        db_file = url.split("sqlite:///", 1)[-1]
        if db_file and db_file not in {":memory:", url}:
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args)


engine = build_engine(DATABASE_URL)


def get_session() -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""

    with Session(engine) as session:
        yield session


def enable_vector_extension(bind: Engine) -> bool:
    """Enable pgvector for recipe embeddings; PostgreSQL only."""

    if bind.dialect.name != "postgresql":
        return False
    with bind.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
    logger.info("pgvector extension enabled")
    return True


def init_db(bind: Engine, *, reset: bool = False) -> None:
    """Create all tables, dropping them first when ``reset`` is set."""

    enable_vector_extension(bind)
    if reset:
        logger.warning("DB_RESET set, dropping all tables")
        SQLModel.metadata.drop_all(bind)
    SQLModel.metadata.create_all(bind)


__all__ = ["build_engine", "enable_vector_extension", "engine", "get_session", "init_db"]
