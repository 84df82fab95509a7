"""Match notifications and the outbound contact message hand-off.

This package provides:
- MatchNotification: what a page shows when matches are found
- ContactDetails: what a user enters to follow up on a match
- MessageRenderer: Jinja2-based contact message rendering
- build_contact_message / build_whatsapp_link: message hand-off helpers
"""

from .models import (
    ContactDetails,
    MatchKind,
    MatchNotification,
    MessageTemplateError,
    NotificationError,
)
from .payloads import build_message_context, format_inr
from .service import build_contact_message, build_whatsapp_link
from .templates import MessageRenderer

__all__ = [
    # Models
    "MatchKind",
    "MatchNotification",
    "ContactDetails",
    # Exceptions
    "NotificationError",
    "MessageTemplateError",
    # Components
    "MessageRenderer",
    # Utilities
    "build_contact_message",
    "build_whatsapp_link",
    "build_message_context",
    "format_inr",
]
