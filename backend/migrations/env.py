"""Alembic environment for the engagement analytics schema.

The app talks to the database through async drivers; migrations run on the
matching sync driver against the same URL.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from config import get_settings
from database import Base

# Registers accounts, tweets, snapshots, follower history, sync status,
# retention settings, daily stats, content analytics and insights
import models  # noqa: F401

ASYNC_DRIVERS = ("+asyncpg", "+aiosqlite")

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_database_url(url: str) -> str:
    """postgresql+asyncpg -> postgresql, sqlite+aiosqlite -> sqlite."""
    for driver in ASYNC_DRIVERS:
        url = url.replace(driver, "")
    return url


def run_migrations_offline(url: str) -> None:
    """Write the migration SQL without a connection."""
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online(url: str) -> None:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = url
    engine = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with engine.connect() as connection:
        # compare_type so column type changes show up in autogenerate
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

        with context.begin_transaction():
            context.run_migrations()


database_url = sync_database_url(get_settings().database_url)

if context.is_offline_mode():
    run_migrations_offline(database_url)
else:
    run_migrations_online(database_url)
