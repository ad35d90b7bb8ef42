from pydantic import BaseModel, Field


class UserRecord(BaseModel):
    """Snapshot of an identity-provider user."""

    id: str = Field(description="Identity-provider user id.")
    email: str | None = Field(default=None, description="Primary email address.")
    display_name: str | None = Field(default=None, description="Full name or username.")
    roles: list[str] = Field(default_factory=list, description="Roles from public metadata.")
    is_demo: bool = Field(default=False, description="App-store review account flag.")


class Actor(BaseModel):
    """The authenticated caller of a request."""

    user_id: str
    is_admin: bool = False
    is_demo: bool = False
    # False when the identity provider could not be reached to read roles.
    role_verified: bool = True
