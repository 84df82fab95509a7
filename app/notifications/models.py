"""Data models and exceptions for match notifications.

This module defines what a page shows when matches are found and the
contact details a user fills in to follow up on one match.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.domain.models import RequirementCriteria, VehicleCriteria


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class MessageTemplateError(NotificationError):
    """Raised when a contact message template cannot be rendered."""

    pass


class MatchKind(str, Enum):
    """Direction of a match notification."""

    VEHICLE_MATCHES_REQUIREMENT = "vehicle-matches-requirement"
    REQUIREMENT_MATCHES_VEHICLE = "requirement-matches-vehicle"


@dataclass
class MatchNotification:
    """A match notification handed to the presenter.

    Attributes:
        kind: Which direction matched
        criteria: Criteria of the posted vehicle or requirement
        matches: Counterpart records (requirements or listings)
        page_context: Page that raised the notification
    """

    kind: MatchKind
    criteria: Union[VehicleCriteria, RequirementCriteria]
    matches: List[Any] = field(default_factory=list)
    page_context: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.matches)

    @property
    def title(self) -> str:
        if self.kind is MatchKind.VEHICLE_MATCHES_REQUIREMENT:
            return "Your vehicle matches these requirements!"
        return "Your requirement matches these vehicles!"


class ContactDetails(BaseModel):
    """Details a user enters to contact the other side of a match."""

    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: str = ""
    message: Optional[str] = None

    @field_validator("name", "phone")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None
