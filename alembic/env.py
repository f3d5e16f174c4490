from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
from apiforge.core.config import settings
from apiforge.db.session import Base
from apiforge.db import models  # noqa

config = context.config
if config.config_file_name:
    try:
        fileConfig(config.config_file_name)
    except (KeyError, ValueError):
        # alembic.ini carries no logging sections; app logging is configured separately
        pass
target_metadata = Base.metadata

# sqlite cannot ALTER most columns in place
render_as_batch = settings.database_url.startswith("sqlite")


def run_migrations_offline():
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    configuration = {"sqlalchemy.url": settings.database_url}
    connectable = engine_from_config(configuration, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=render_as_batch)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
