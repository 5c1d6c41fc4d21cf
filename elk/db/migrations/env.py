"""Alembic environment configuration for async migrations."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from elk.core.settings import DatabaseSettings
from elk.db.base import BaseEntity
from elk.db.models_oauth import AuthorizationCodeEntity

_registered = (AuthorizationCodeEntity,)

# The platform owns the users table; only our own tables are migrated here.
_OWNED_TABLES = frozenset({AuthorizationCodeEntity.__tablename__})

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = BaseEntity.metadata


def include_object(obj, name, type_, _reflected, _compare_to) -> bool:
    """Restrict autogenerate to tables this service owns."""
    if type_ == "table":
        return name in _OWNED_TABLES
    table = getattr(obj, "table", None)
    return table is None or table.name in _OWNED_TABLES


def run_migrations_offline() -> None:
    """Run migrations in offline mode (SQL script generation)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url") or DatabaseSettings().async_url,
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_object=include_object,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in online mode with async engine."""
    engine = create_async_engine(DatabaseSettings().async_url)

    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
