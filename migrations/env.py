import os

from alembic import context
from sqlalchemy import engine_from_config, pool

from wsi.infrastructure.persistence.migrate import to_sync_url
from wsi.infrastructure.persistence.tables import metadata

config = context.config

# Running `alembic` by hand: honour the same env override as the app.
if url := os.environ.get("WSI_DATABASE__URL"):
    config.set_main_option("sqlalchemy.url", to_sync_url(url))

target_metadata = metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,  # SQLite needs batch mode for ALTER
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
