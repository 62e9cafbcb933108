from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool
import models  # noqa: F401  populates Base.metadata
from alembic import context
from core.base import Base
from core.settings import settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_database_url() -> str:
    """Synchronous driver URL for migrations, derived from the app's async URL."""
    db_url = settings.SQLALCHEMY_DATABASE_URI
    if not db_url:
        raise ValueError("Database URL is not configured. Please set DATABASE_URL or individual POSTGRES_* environment variables.")
    # psycopg serves both sync and async; aiosqlite has a stdlib sync counterpart
    return db_url.replace("sqlite+aiosqlite://", "sqlite://")


def run_migrations_offline() -> None:
    """Emit the migration SQL to the script output without connecting."""
    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_database_url()
    connectable = engine_from_config(
        configuration, prefix="sqlalchemy.", poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
