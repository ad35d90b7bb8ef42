from pydantic import BaseModel, Field


class GeoLocation(BaseModel):
    id: str | None = Field(default=None, description="Unique location identifier.")
    name: str | None = Field(default=None, description="Human-readable site name.")
    address: str | None = Field(default=None, description="Street address of the site.")
    lat: float = Field(ge=-90, le=90, description="Latitude in decimal degrees.")
    lng: float = Field(ge=-180, le=180, description="Longitude in decimal degrees.")
