from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class ApiSettings(BaseSettings):
    APP_NAME: str = "nv-internal-tasks"
    APP_VERSION: str = "0.1.0"
    ADMIN_ROLE: str = "nv_internal_admin"
    # Accounts that skip GPS verification in addition to those flagged isDemo.
    DEMO_USER_IDS: list[str] = []

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_api_settings() -> ApiSettings:
    return ApiSettings()  # type: ignore[call-arg]
