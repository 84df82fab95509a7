"""Core domain models for listings, requirements, and match criteria.

This module defines the data structures used throughout the application:
- VehicleListing: a vehicle posted for sale
- Requirement: a buyer's description of the vehicle they want
- VehicleCriteria / RequirementCriteria: match criteria derived at posting time
- CurrentUser: identity supplied by the auth collaborator
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.utils.timestamps import ensure_utc


class VehicleType(str, Enum):
    """Supported vehicle types."""

    CAR = "car"
    BIKE = "bike"


class ListingStatus(str, Enum):
    """Lifecycle states of a vehicle listing."""

    PENDING = "pending"
    ACTIVE = "active"
    HIDDEN = "hidden"
    SOLD = "sold"


class RequirementStatus(str, Enum):
    """Lifecycle states of a buyer requirement."""

    OPEN = "open"
    MATCHED = "matched"
    CLOSED = "closed"


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    stripped = v.strip()
    return stripped if stripped else None


class PosterContact(BaseModel):
    """Contact details of the user who posted a requirement."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class VehicleListing(BaseModel):
    """A vehicle posted for sale.

    Only listings with status ``active`` take part in requirement-to-vehicle
    matching.
    """

    id: str = Field(..., description="Listing identifier")
    vehicle_type: VehicleType = Field(..., description="car or bike")
    title: Optional[str] = Field(None, description="Listing headline")
    make: str = Field(..., min_length=1, description="Manufacturer, e.g. Toyota")
    model: str = Field(..., min_length=1, description="Model name, e.g. Innova")
    year: int = Field(..., ge=1900, le=2100, description="Model year")
    price: int = Field(..., ge=0, description="Asking price")
    location: Optional[str] = Field(None, description="Where the vehicle is")
    status: ListingStatus = Field(ListingStatus.PENDING, description="Listing status")
    posted_by: str = Field(..., description="User id of the seller")
    created_at: datetime = Field(..., description="When the listing was created (UTC)")

    @field_validator("make", "model")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from make and model."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("title", "location")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    def to_criteria(self) -> "VehicleCriteria":
        """Derive the criteria used to look for matching requirements."""
        return VehicleCriteria(
            vehicle_type=self.vehicle_type,
            make=self.make,
            model=self.model,
            year=self.year,
        )

    model_config = {"json_schema_extra": {"example": {
        "id": "b7f5c1f2-4a1e-4f0e-9d57-7f3b2a0c9e11",
        "vehicle_type": "car",
        "title": "Toyota Innova Crysta 2.4 VX",
        "make": "Toyota",
        "model": "Innova",
        "year": 2021,
        "price": 1850000,
        "location": "Kochi",
        "status": "active",
        "posted_by": "user-123",
        "created_at": "2025-11-04T10:00:00Z",
    }}}


class Requirement(BaseModel):
    """A buyer's posted description of a vehicle they want to purchase.

    Absent make/model mean "any". Only requirements with status ``open`` take
    part in vehicle-to-requirement matching.
    """

    id: str = Field(..., description="Requirement identifier")
    vehicle_type: VehicleType = Field(..., description="car or bike")
    make: Optional[str] = Field(None, description="Wanted make (None = any)")
    model: Optional[str] = Field(None, description="Wanted model (None = any)")
    year_range_min: Optional[int] = None
    year_range_max: Optional[int] = None
    price_range_min: Optional[int] = None
    price_range_max: Optional[int] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status: RequirementStatus = Field(RequirementStatus.OPEN, description="Requirement status")
    posted_by: str = Field(..., description="User id of the buyer")
    created_at: datetime = Field(..., description="When the requirement was created (UTC)")
    poster: Optional[PosterContact] = Field(
        None, description="Contact details of the poster, when joined from users"
    )

    @field_validator("make", "model", "location", "description")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace; empty strings become None."""
        return _strip_optional(v)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_ranges(self):
        """Reject inverted year and price ranges."""
        if (
            self.year_range_min is not None
            and self.year_range_max is not None
            and self.year_range_min > self.year_range_max
        ):
            raise ValueError("year_range_min cannot be greater than year_range_max")
        if (
            self.price_range_min is not None
            and self.price_range_max is not None
            and self.price_range_min > self.price_range_max
        ):
            raise ValueError("price_range_min cannot be greater than price_range_max")
        return self

    def to_criteria(self) -> "RequirementCriteria":
        """Derive the criteria used to look for matching listings."""
        return RequirementCriteria(
            vehicle_type=self.vehicle_type,
            make=self.make,
            model=self.model,
            year_range_min=self.year_range_min,
            year_range_max=self.year_range_max,
        )


class VehicleCriteria(BaseModel):
    """Match criteria built from a just-posted vehicle.

    This is also the shape persisted in the pending-match slot.
    """

    vehicle_type: VehicleType
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int

    @field_validator("make", "model")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    model_config = {"frozen": True}


class RequirementCriteria(BaseModel):
    """Match criteria built from a just-posted requirement."""

    vehicle_type: VehicleType
    make: Optional[str] = None
    model: Optional[str] = None
    year_range_min: Optional[int] = None
    year_range_max: Optional[int] = None

    @field_validator("make", "model")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)

    model_config = {"frozen": True}


class CurrentUser(BaseModel):
    """Identity of the signed-in user, supplied by the auth collaborator."""

    id: str = Field(..., min_length=1)
    email: EmailStr
