import logging
import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

from app.core.config import settings  # noqa: E402

# Allow overriding the credentials for migrations only
sqlalchemy_url = os.getenv("MIGRATION_DATABASE_URL") or settings.sqlalchemy_url
config.set_main_option("sqlalchemy.url", sqlalchemy_url.replace("%", "%%"))

from app.db.base import Base  # noqa: E402
from app.db.models import *  # noqa: E402,F401,F403

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Configures the context with just a URL and emits the SQL to the script
    output instead of executing it.
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        with connectable.connect() as connection:
            context.configure(connection=connection, target_metadata=target_metadata)

            with context.begin_transaction():
                context.run_migrations()
    except Exception:
        logger.error(
            "Database connection failed for %s; set MIGRATION_DATABASE_URL or the MYSQL_* variables",
            connectable.url.render_as_string(hide_password=True),
        )
        raise


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
