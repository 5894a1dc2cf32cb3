from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema speaking camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserCreate(CamelModel):
    """Payload for signing up a new owner."""

    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    phone: Optional[str] = None
    location: Optional[str] = None


class UserOut(CamelModel):
    """Response schema for user data."""

    id: int
    full_name: str
    phone: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Payload stored inside JWT token."""

    sub: str | None = None
    exp: Optional[datetime] = None
    scope: Optional[str] = None


def _check_coordinates(lat, lng, fields_set=None):
    if fields_set is not None and ("lat" in fields_set) != ("lng" in fields_set):
        raise ValueError("lat and lng must be provided together")
    if (lat is None) != (lng is None):
        raise ValueError("lat and lng must be provided together")


class PetCreate(CamelModel):
    """Schema for registering a lost pet.

    The status is not accepted from the client: new pets are always lost.
    """

    name: str = Field(min_length=1)
    location: Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lng: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    image_data_uri: Optional[str] = Field(default=None, alias="imageDataURI")

    @model_validator(mode="after")
    def coordinates_pair(self):
        _check_coordinates(self.lat, self.lng)
        return self


class PetPatch(CamelModel):
    """Partial update of a pet.

    Only fields present in the request are applied. ``name`` and
    ``status`` cannot be cleared; ``location`` and the coordinate pair
    can be cleared by sending ``null``.
    """

    name: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = None
    status: Optional[Literal["lost", "found"]] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    lng: Optional[float] = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    image_data_uri: Optional[str] = Field(default=None, alias="imageDataURI")

    @model_validator(mode="after")
    def explicit_values(self):
        for field in ("name", "status"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        _check_coordinates(self.lat, self.lng, self.model_fields_set)
        return self

    def changes(self) -> dict:
        """Return the store columns set by this patch, image excluded."""
        return self.model_dump(exclude_unset=True, exclude={"image_data_uri"})


class PetOut(CamelModel):
    """Response schema for a pet record."""

    id: int
    user_id: int
    name: str
    location: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    image_url: Optional[str] = None
    status: str
    created_at: datetime


class ReportCreate(CamelModel):
    """Public sighting report payload."""

    pet_id: int
    reporter_name: str = Field(min_length=1)
    reporter_phone: str = Field(min_length=1)
    location: Optional[str] = None
    details: Optional[str] = None


class ReportOut(CamelModel):
    id: int
    pet_id: int
    reporter_name: str
    reporter_phone: str
    location: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime
