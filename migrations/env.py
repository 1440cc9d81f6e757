"""Alembic environment bound to the gallery config store engine."""

from __future__ import annotations

from alembic import context
from sqlmodel import SQLModel

from gallery.database import engine

# Registers domain_configs on SQLModel.metadata
from gallery import models as _models  # noqa: F401

target_metadata = SQLModel.metadata


def run_migrations_online() -> None:
    with engine.connect() as conn:
        context.configure(connection=conn, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    raise RuntimeError("Offline migration mode is not supported. Run without --sql.")
else:
    run_migrations_online()
