import inject

from fieldtask.app.domain.repositories import (
    ActivityRepository,
    IdentityProvider,
    TaskRepository,
)
from fieldtask.app.infrastructure.identity.client import HttpIdentityProvider
from fieldtask.app.infrastructure.postgres.orm import PostgresOrm
from fieldtask.app.infrastructure.postgres.repositories import (
    PostgresActivityRepository,
    PostgresTaskRepository,
)
from fieldtask.setup.db_config import get_database_settings
from fieldtask.setup.identity_config import get_identity_settings


def _bind_services(binder: inject.Binder) -> None:
    db_settings = get_database_settings()
    identity_settings = get_identity_settings()

    orm = PostgresOrm(db_settings.DATABASE_URL, echo=db_settings.DATABASE_ECHO)
    identity = HttpIdentityProvider(
        identity_settings.IDENTITY_API_URL,
        identity_settings.IDENTITY_API_KEY,
        timeout_seconds=identity_settings.IDENTITY_TIMEOUT_SECONDS,
    )

    binder.bind(PostgresOrm, orm)
    binder.bind(HttpIdentityProvider, identity)
    binder.bind(TaskRepository, PostgresTaskRepository(orm))
    binder.bind(ActivityRepository, PostgresActivityRepository(orm))
    binder.bind(IdentityProvider, identity)


def configure_di() -> None:
    """Bind repository protocols to their implementations once per process."""
    if inject.is_configured():
        return
    inject.configure(_bind_services)


async def shutdown_di() -> None:
    """Close the HTTP client and database pool bound by ``configure_di``."""
    if not inject.is_configured():
        return
    await inject.instance(HttpIdentityProvider).aclose()
    await inject.instance(PostgresOrm).dispose()
