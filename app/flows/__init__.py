"""Page-level match notification flows."""

from .models import (
    DEFAULT_RECHECK_CONTEXTS,
    NotificationState,
    PageContext,
    RequirementPostOutcome,
)
from .notification_flow import DEFAULT_RECHECK_DELAY_SECONDS, MatchNotificationFlow

__all__ = [
    "MatchNotificationFlow",
    "NotificationState",
    "PageContext",
    "RequirementPostOutcome",
    "DEFAULT_RECHECK_CONTEXTS",
    "DEFAULT_RECHECK_DELAY_SECONDS",
]
