from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class VerificationSettings(BaseSettings):
    """Tolerances for GPS check-in/check-out and scheduling rules."""
    CHECKIN_ACCEPT_RADIUS_METERS: float = 100.0
    CHECKIN_WARNING_RADIUS_METERS: float = 150.0
    REQUIRE_EXPECTED_REVENUE: bool = False

    model_config = ConfigDict(env_file=".env", extra="ignore")


def get_verification_settings() -> VerificationSettings:
    """Return a fresh verification settings instance."""
    return VerificationSettings()
