"""Outbound message hand-off for contacting the other side of a match.

The rendered message is not sent by this service. It is returned as text and
as a chat deep link the presenter opens for the user.
"""

from typing import Any, Optional
from urllib.parse import quote

from app.logging import get_logger

from .models import ContactDetails, MatchKind
from .payloads import build_message_context
from .templates import MessageRenderer

logger = get_logger(__name__, component="notifications")

WHATSAPP_BASE_URL = "https://wa.me"

_default_renderer: Optional[MessageRenderer] = None


def _get_renderer() -> MessageRenderer:
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = MessageRenderer()
    return _default_renderer


def build_contact_message(
    kind: MatchKind,
    match: Any,
    contact: ContactDetails,
    renderer: Optional[MessageRenderer] = None,
) -> str:
    """Render the contact message for one selected match.

    Args:
        kind: Direction of the notification the match was picked from
        match: Requirement or VehicleListing selected by the user
        contact: Contact details entered by the user
        renderer: Renderer to use (module default if None)

    Returns:
        Plain-text message body

    Raises:
        MessageTemplateError: If the template cannot be rendered
        TypeError: If ``match`` does not fit ``kind``
    """
    context = build_message_context(kind, match, contact)
    message = (renderer or _get_renderer()).render(context)

    logger.debug(
        "Built contact message",
        extra={
            "event": "notifications.message.built",
            "kind": context["kind"],
            "match_id": getattr(match, "id", None),
        },
    )
    return message


def build_whatsapp_link(number: str, message: str) -> str:
    """Build a WhatsApp deep link carrying ``message``.

    Args:
        number: Destination number in international format, digits only
        message: Message text, URL-encoded into the ``text`` parameter

    Example:
        >>> build_whatsapp_link("919746725111", "Hi there")
        'https://wa.me/919746725111?text=Hi%20there'
    """
    digits = "".join(ch for ch in str(number) if ch.isdigit())
    if not digits:
        raise ValueError("WhatsApp number must contain digits")
    return f"{WHATSAPP_BASE_URL}/{digits}?text={quote(message, safe='')}"
