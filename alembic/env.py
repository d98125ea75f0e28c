from alembic import context

from push_server import models as _models  # noqa: F401
from push_server.db.base import Base
from push_server.db.session import get_engine

target_metadata = Base.metadata


def run_migrations_online() -> None:
    with get_engine().connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    raise RuntimeError("Offline migrations are not supported; set DATABASE_URL and run online.")
run_migrations_online()
