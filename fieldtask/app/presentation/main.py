from fastapi import FastAPI

from fieldtask.app.presentation.errors import register_exception_handlers
from fieldtask.setup.api_config import get_api_settings
from fieldtask.setup.app_config import configure_di, shutdown_di
from fieldtask.setup.logging_config import configure_logging

settings = get_api_settings()
configure_logging()
configure_di()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Field task lifecycle with GPS-verified check-in/check-out",
)
register_exception_handlers(app)

app.add_event_handler("shutdown", shutdown_di)

from fieldtask.app.presentation.account_routes import router as account_router  # noqa: E402
from fieldtask.app.presentation.routes import router as api_router  # noqa: E402

app.include_router(api_router, prefix="")
app.include_router(account_router, prefix="")
