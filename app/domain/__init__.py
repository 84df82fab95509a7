"""Domain models for the vehicle match service."""

from .models import (
    CurrentUser,
    ListingStatus,
    PosterContact,
    Requirement,
    RequirementCriteria,
    RequirementStatus,
    VehicleCriteria,
    VehicleListing,
    VehicleType,
)

__all__ = [
    "VehicleListing",
    "Requirement",
    "PosterContact",
    "VehicleCriteria",
    "RequirementCriteria",
    "CurrentUser",
    "VehicleType",
    "ListingStatus",
    "RequirementStatus",
]
