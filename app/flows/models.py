"""States, page contexts and results for match notification flows."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, List


class NotificationState(str, Enum):
    """Lifecycle of a notification within one page context."""

    IDLE = "idle"
    CHECKING = "checking"
    SHOWING = "showing"
    DISMISSED = "dismissed"
    DISMISSED_PERMANENTLY = "dismissed_permanently"


class PageContext(str, Enum):
    """Pages that host a match notification flow."""

    HOME = "home"
    DASHBOARD = "dashboard"
    REQUIREMENT_FORM = "requirement_form"
    VEHICLE_POST = "vehicle_post"


# Pages that re-check the pending vehicle match after a delay
DEFAULT_RECHECK_CONTEXTS: FrozenSet[PageContext] = frozenset(
    {PageContext.HOME, PageContext.DASHBOARD}
)


@dataclass
class RequirementPostOutcome:
    """Result of posting a requirement.

    Attributes:
        matches: Listings that matched the requirement
        close_form: True when no notification is shown and the form can close
    """

    matches: List[Any] = field(default_factory=list)
    close_form: bool = True
