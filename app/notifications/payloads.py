"""Context building for contact message templates."""

from typing import Any, Dict, Optional

from app.domain.models import Requirement, VehicleListing

from .models import ContactDetails, MatchKind


def format_inr(amount: Optional[int]) -> str:
    """Format an integer amount with Indian digit grouping.

    Example:
        >>> format_inr(1850000)
        '18,50,000'
    """
    if amount is None:
        return ""
    sign = "-" if amount < 0 else ""
    digits = str(abs(int(amount)))
    if len(digits) <= 3:
        return sign + digits

    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return sign + ",".join(groups + [tail])


def build_message_context(
    kind: MatchKind, match: Any, contact: ContactDetails
) -> Dict[str, Any]:
    """Build the template context for one selected match.

    Args:
        kind: Direction of the notification the match came from
        match: Requirement (for vehicle notifications) or VehicleListing
        contact: Contact details entered by the user

    Returns:
        Dictionary with ``kind``, ``contact`` and either ``requirement`` or
        ``vehicle`` keys
    """
    context: Dict[str, Any] = {
        "kind": MatchKind(kind).value,
        "contact": {
            "name": contact.name,
            "phone": contact.phone,
            "email": contact.email,
            "message": contact.message,
        },
    }

    if MatchKind(kind) is MatchKind.VEHICLE_MATCHES_REQUIREMENT:
        if not isinstance(match, Requirement):
            raise TypeError("vehicle-matches-requirement messages need a Requirement")
        context["requirement"] = {
            "make": match.make,
            "model": match.model,
            "year_range_min": match.year_range_min,
            "year_range_max": match.year_range_max,
            "price_range_min": match.price_range_min,
            "price_range_max": match.price_range_max,
            "location": match.location,
            "description": match.description,
        }
    else:
        if not isinstance(match, VehicleListing):
            raise TypeError("requirement-matches-vehicle messages need a VehicleListing")
        context["vehicle"] = {
            "title": match.title or f"{match.year} {match.make} {match.model}",
            "make": match.make,
            "model": match.model,
            "year": match.year,
            "price": format_inr(match.price),
            "location": match.location,
        }

    return context
