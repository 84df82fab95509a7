"""Unit tests for contact message rendering and the chat link hand-off.

Tests:
- Indian digit grouping for prices
- Template context for both notification kinds
- Rendered message text and its fallbacks
- WhatsApp link encoding
- Template failures surfacing as MessageTemplateError
"""

from urllib.parse import parse_qs, urlparse

import pytest

from app.notifications import (
    ContactDetails,
    MatchKind,
    MatchNotification,
    MessageRenderer,
    MessageTemplateError,
    build_contact_message,
    build_message_context,
    build_whatsapp_link,
    format_inr,
)
from tests.helpers import make_listing, make_requirement


@pytest.fixture
def contact():
    return ContactDetails(name="  Rahul ", phone="9876543210", email="rahul@example.com")


class TestFormatInr:
    """Tests for format_inr()."""

    @pytest.mark.parametrize(
        "amount,expected",
        [
            (0, "0"),
            (999, "999"),
            (1000, "1,000"),
            (85000, "85,000"),
            (150000, "1,50,000"),
            (1850000, "18,50,000"),
            (123456789, "12,34,56,789"),
            (-150000, "-1,50,000"),
        ],
    )
    def test_grouping(self, amount, expected):
        assert format_inr(amount) == expected

    def test_none(self):
        assert format_inr(None) == ""


class TestContactDetails:
    """Tests for ContactDetails validation."""

    def test_strips_and_defaults(self, contact):
        assert contact.name == "Rahul"
        assert contact.message is None

    def test_blank_message_is_none(self):
        details = ContactDetails(name="Rahul", phone="98", message="   ")

        assert details.message is None

    @pytest.mark.parametrize("field", ["name", "phone"])
    def test_required_fields(self, field):
        data = {"name": "Rahul", "phone": "98"}
        data[field] = "  "

        with pytest.raises(ValueError):
            ContactDetails(**data)


class TestMatchNotification:
    """Tests for the notification handed to presenters."""

    def test_titles_and_count(self):
        listing = make_listing()
        vehicle_note = MatchNotification(
            kind=MatchKind.VEHICLE_MATCHES_REQUIREMENT,
            criteria=listing.to_criteria(),
            matches=[make_requirement(), make_requirement()],
        )
        requirement_note = MatchNotification(
            kind=MatchKind.REQUIREMENT_MATCHES_VEHICLE,
            criteria=make_requirement().to_criteria(),
            matches=[listing],
        )

        assert vehicle_note.title == "Your vehicle matches these requirements!"
        assert vehicle_note.count == 2
        assert requirement_note.title == "Your requirement matches these vehicles!"
        assert requirement_note.count == 1


class TestBuildMessageContext:
    """Tests for build_message_context()."""

    def test_requirement_context(self, contact):
        requirement = make_requirement(year_range_min=2018, description="Family car")

        context = build_message_context(
            MatchKind.VEHICLE_MATCHES_REQUIREMENT, requirement, contact
        )

        assert context["kind"] == "vehicle-matches-requirement"
        assert context["requirement"]["make"] == "Toyota"
        assert context["requirement"]["year_range_min"] == 2018
        assert context["contact"]["name"] == "Rahul"
        assert "vehicle" not in context

    def test_vehicle_title_falls_back_to_year_make_model(self, contact):
        context = build_message_context(
            MatchKind.REQUIREMENT_MATCHES_VEHICLE, make_listing(title=None), contact
        )

        assert context["vehicle"]["title"] == "2021 Toyota Innova"
        assert context["vehicle"]["price"] == "18,50,000"

    def test_kind_accepts_plain_string(self, contact):
        context = build_message_context("requirement-matches-vehicle", make_listing(), contact)

        assert context["kind"] == "requirement-matches-vehicle"

    def test_mismatched_record_rejected(self, contact):
        """A listing cannot be used for a vehicle-matches-requirement message."""
        with pytest.raises(TypeError):
            build_message_context(MatchKind.VEHICLE_MATCHES_REQUIREMENT, make_listing(), contact)
        with pytest.raises(TypeError):
            build_message_context(MatchKind.REQUIREMENT_MATCHES_VEHICLE, make_requirement(), contact)


class TestBuildContactMessage:
    """Tests for the rendered message text."""

    def test_requirement_message(self, contact):
        """Absent requirement fields read 'Any' and the description 'N/A'."""
        requirement = make_requirement(model=None, year_range_min=2018, price_range_max=2000000)

        message = build_contact_message(
            MatchKind.VEHICLE_MATCHES_REQUIREMENT, requirement, contact
        )

        assert message.startswith("New match contact from matching popup.\n\n")
        assert "Context: User has posted a vehicle that matches a requirement." in message
        assert "- Make: Toyota\n- Model: Any\n" in message
        assert "- Year Range: 2018 - Any" in message
        assert "- Price Range: Any - 2000000" in message
        assert "- Location: Any\nDescription: N/A\n\nContact Details:" in message
        assert "Vehicle Details" not in message

    def test_vehicle_message(self, contact):
        """Listings show the rupee price with Indian grouping."""
        listing = make_listing(title="Innova Crysta VX", location=None)

        message = build_contact_message(
            MatchKind.REQUIREMENT_MATCHES_VEHICLE, listing, contact
        )

        assert "Context: User has a requirement that matches a vehicle." in message
        assert "- Title: Innova Crysta VX" in message
        assert "- Year: 2021" in message
        assert "- Price: ₹18,50,000" in message
        assert "- Location: Not specified\n\nContact Details:" in message

    def test_contact_block(self, contact):
        message = build_contact_message(
            MatchKind.REQUIREMENT_MATCHES_VEHICLE, make_listing(), contact
        )

        assert "- Name: Rahul\n- Phone: 9876543210\n- Email: rahul@example.com" in message
        assert message.endswith("Message from user:\nNo additional message provided.")

    def test_user_message_included(self):
        details = ContactDetails(name="Rahul", phone="98", message="Is it still available?")

        message = build_contact_message(
            MatchKind.REQUIREMENT_MATCHES_VEHICLE, make_listing(), details
        )

        assert message.endswith("Message from user:\nIs it still available?")

    def test_custom_renderer_is_used(self, contact):
        class FixedRenderer:
            def render(self, context):
                return f"kind={context['kind']}"

        message = build_contact_message(
            MatchKind.REQUIREMENT_MATCHES_VEHICLE, make_listing(), contact, renderer=FixedRenderer()
        )

        assert message == "kind=requirement-matches-vehicle"


class TestMessageRenderer:
    """Tests for template failures."""

    def test_missing_template(self):
        renderer = MessageRenderer(message_template="does_not_exist.txt.j2")

        with pytest.raises(MessageTemplateError, match="Template rendering failed"):
            renderer.render({"kind": "vehicle-matches-requirement"})

    def test_missing_context_key(self, contact):
        """StrictUndefined turns a missing section into MessageTemplateError."""
        context = build_message_context(
            MatchKind.REQUIREMENT_MATCHES_VEHICLE, make_listing(), contact
        )
        del context["vehicle"]

        with pytest.raises(MessageTemplateError):
            MessageRenderer().render(context)


class TestBuildWhatsappLink:
    """Tests for build_whatsapp_link()."""

    def test_message_is_url_encoded(self):
        link = build_whatsapp_link("919746725111", "Hi there\n- Price: ₹18,50,000 & more")

        parsed = urlparse(link)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://wa.me/919746725111"
        assert "%0A" in parsed.query
        assert "%26" in parsed.query
        assert parse_qs(parsed.query)["text"] == ["Hi there\n- Price: ₹18,50,000 & more"]

    def test_number_keeps_digits_only(self):
        assert build_whatsapp_link("+91 97467-25111", "x") == "https://wa.me/919746725111?text=x"

    def test_number_without_digits(self):
        with pytest.raises(ValueError):
            build_whatsapp_link("+", "x")
