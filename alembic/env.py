import os
import sys
from logging.config import fileConfig

from alembic import context

# -------------------------------------------------
# Ensure project root is on PYTHONPATH
# -------------------------------------------------
sys.path.append(
    os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
)

# -------------------------------------------------
# Import engine & metadata from the app
# -------------------------------------------------
from leadengine.config import DATABASE_URL
from leadengine.database import Base, engine
from leadengine.models import company, lead, scored_lead, api_key, usage_log  # noqa: F401 (needed for metadata)

# -------------------------------------------------
# Alembic Config
# -------------------------------------------------
config = context.config

# Logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Metadata for autogenerate
target_metadata = Base.metadata


# -------------------------------------------------
# OFFLINE migrations
# -------------------------------------------------
def run_migrations_offline() -> None:
    context.configure(
        url=DATABASE_URL.replace('postgres://', 'postgresql://', 1),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


# -------------------------------------------------
# ONLINE migrations
# -------------------------------------------------
def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


# -------------------------------------------------
# Run migrations
# -------------------------------------------------
if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
