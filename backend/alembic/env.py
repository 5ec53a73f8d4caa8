"""
Alembic environment for the reservations schema.

Migrations run over the synchronous driver (psycopg2); the URL comes from
Settings.DATABASE_URL_SYNC, which defaults to DATABASE_URL minus its async
driver suffix.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from reservation_api.core.config import get_settings
from reservation_api.db.base import Base
import reservation_api.models  # noqa: F401  registers reservations, reservation_history, provider_schedules

config = context.config
config.set_main_option("sqlalchemy.url", get_settings().DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Enum columns are stored as plain strings; compare types so length changes show up
COMPARE_OPTIONS = {"compare_type": True, "compare_server_default": True}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, **COMPARE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
