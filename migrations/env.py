"""Alembic environment for the hygiene commitment store (Postgres or SQLite)."""

from __future__ import annotations

import logging
import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine.url import make_url
from sqlmodel import SQLModel

from app.config import settings
from app.models import commitment_record  # noqa: F401 - registers the table on SQLModel.metadata
from app.services.commitments.repositories import coerce_sync_database_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("revops.alembic")
logger.setLevel(logging.INFO)

target_metadata = SQLModel.metadata
# The commitment store may share a database with the CRM sync; only manage our tables.
MANAGED_TABLES = frozenset(target_metadata.tables)


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    if type_ == "table":
        return name in MANAGED_TABLES
    table = getattr(obj, "table", None)
    if table is not None:
        return table.name in MANAGED_TABLES
    return True


def resolve_database_url() -> tuple[str, dict[str, Any], str]:
    """DATABASE_URL env var, then the Alembic config, then app settings."""
    candidates = (
        ("environment", os.environ.get("DATABASE_URL")),
        ("alembic config", config.get_main_option("sqlalchemy.url")),
        ("settings", settings.database_url),
    )
    for source, value in candidates:
        if not value:
            continue
        url, connect_args, drivername = coerce_sync_database_url(make_url(value))
        rendered = make_url(url).render_as_string(hide_password=True)
        logger.info("migrations.database_url", extra={"source": source, "url": rendered})
        config.print_stdout(f"[Alembic] DATABASE_URL source={source}: {rendered}")
        return url, connect_args, drivername
    raise RuntimeError("DATABASE_URL must be set to run commitment migrations.")


def _configure(drivername: str, **kwargs: Any) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        # SQLite cannot ALTER constraints in place.
        render_as_batch=drivername.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    url, _, drivername = resolve_database_url()
    _configure(drivername, url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url, connect_args, drivername = resolve_database_url()
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = url
    engine = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=connect_args,
    )
    try:
        with engine.connect() as connection:
            _configure(drivername, connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
