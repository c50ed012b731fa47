# alembic/env.py

import sys
from os.path import abspath, dirname
# Корень проекта в sys.path, чтобы импорты piercerhub работали из alembic
sys.path.insert(0, abspath(dirname(dirname(__file__))))

from logging.config import fileConfig
from sqlalchemy import engine_from_config
from sqlalchemy.pool import NullPool
from alembic import context

# URL базы берем из настроек приложения, а не из alembic.ini
from piercerhub.core.config import settings
from piercerhub.db.session import Base
# Модели импортируются ради регистрации таблиц в метаданных
from piercerhub.models.client import Client  # noqa: F401
from piercerhub.models.loyalty import ClientLoyalty, LoyaltyPlan, LoyaltyRewardHistory  # noqa: F401
from piercerhub.models.notification import Notification  # noqa: F401
from piercerhub.models.subscription import UserSubscription  # noqa: F401
from piercerhub.models.team import TeamMember  # noqa: F401

target_metadata = Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        {"sqlalchemy.url": settings.DATABASE_URL},
        prefix="sqlalchemy.",
        poolclass=NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
