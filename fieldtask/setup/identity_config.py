from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class IdentitySettings(BaseSettings):
    """Configuration for the identity provider REST API."""
    IDENTITY_API_URL: str = "https://api.clerk.com/v1"
    IDENTITY_API_KEY: str
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_identity_settings() -> IdentitySettings:
    """Return a fresh identity provider settings instance."""
    return IdentitySettings()  # type: ignore[call-arg]
