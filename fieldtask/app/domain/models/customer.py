from pydantic import BaseModel, Field


class Customer(BaseModel):
    id: str | None = Field(default=None, description="Unique customer identifier.")
    name: str | None = Field(default=None, description="Customer display name.")
    phone: str | None = Field(default=None, description="Customer phone number.")
