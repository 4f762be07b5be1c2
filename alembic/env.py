"""
============================================================
TARJETA CRC — alembic/env.py
============================================================
Responsabilidades:
  - Correr las migraciones del audit store (entities, audit_logs,
    exception_logs) en modo online u offline.
  - Tomar DATABASE_URL de audit_relay Settings, igual que la API y el worker.

Policy:
  - Migraciones escritas a mano (op.create_table / op.execute); no hay
    metadata ORM, así que autogenerate no aplica.
============================================================
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from audit_relay.crosscutting.config import get_settings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

_DRIVER_PREFIXES = ("postgresql://", "postgres://")


def database_url() -> str:
    """DATABASE_URL (o sqlalchemy.url del ini) con dialecto psycopg 3."""
    url = get_settings().database_url or config.get_main_option("sqlalchemy.url")
    for prefix in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def run_offline() -> None:
    context.configure(
        url=database_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=None)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
