"""Alembic environment for the StudPal schema."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from studpal.config import get_settings
from studpal.db import models  # noqa: F401 - registers tables on Base.metadata
from studpal.db.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    """
    Sync (psycopg2) URL for migrations.

    `alembic -x db_url=...` overrides the configured database, e.g. to
    migrate a scratch copy.
    """
    return context.get_x_argument(as_dictionary=True).get("db_url") or get_settings().database_url_sync


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
