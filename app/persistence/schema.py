"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the database schema and provides
conversion methods between ORM models and domain models.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Index, Integer, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from app.domain.models import PosterContact, Requirement, VehicleListing

logger = logging.getLogger(__name__)

# Create base class for ORM models
Base = declarative_base()

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class UserModel(Base):
    """ORM model for users table.

    Only the columns needed to show a requirement poster's contact details.
    """

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, nullable=False)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default="active")

    def to_contact(self) -> PosterContact:
        return PosterContact(name=self.name, email=self.email, phone=self.phone)


class VehicleListingModel(Base):
    """ORM model for vehicle_listings table."""

    __tablename__ = "vehicle_listings"

    id = Column(String(64), primary_key=True, nullable=False)
    vehicle_type = Column(String(10), nullable=False)
    title = Column(Text, nullable=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    location = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False)
    posted_by = Column(String(64), nullable=False)

    # Timestamps (stored as ISO 8601 strings, sortable)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_listings_status_type", "status", "vehicle_type"),
        Index("idx_listings_created_at", "created_at"),
    )

    def to_domain(self) -> VehicleListing:
        """Convert ORM model to domain model.

        Returns:
            VehicleListing: Domain model instance
        """
        return VehicleListing(
            id=self.id,
            vehicle_type=self.vehicle_type,
            title=self.title,
            make=self.make,
            model=self.model,
            year=self.year,
            price=self.price,
            location=self.location,
            status=self.status,
            posted_by=self.posted_by,
            created_at=_parse_datetime(self.created_at),
        )

    @classmethod
    def from_domain(cls, listing: VehicleListing) -> "VehicleListingModel":
        """Create ORM model from domain model."""
        return cls(
            id=listing.id,
            vehicle_type=listing.vehicle_type.value,
            title=listing.title,
            make=listing.make,
            model=listing.model,
            year=listing.year,
            price=listing.price,
            location=listing.location,
            status=listing.status.value,
            posted_by=listing.posted_by,
            created_at=_format_datetime(listing.created_at),
        )


class RequirementModel(Base):
    """ORM model for requirements table."""

    __tablename__ = "requirements"

    id = Column(String(64), primary_key=True, nullable=False)
    vehicle_type = Column(String(10), nullable=False)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year_range_min = Column(Integer, nullable=True)
    year_range_max = Column(Integer, nullable=True)
    price_range_min = Column(Integer, nullable=True)
    price_range_max = Column(Integer, nullable=True)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False)
    posted_by = Column(String(64), nullable=False)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_requirements_status_type", "status", "vehicle_type"),
        Index("idx_requirements_created_at", "created_at"),
    )

    def to_domain(self, poster: Optional[UserModel] = None) -> Requirement:
        """Convert ORM model to domain model.

        Args:
            poster: Joined users row for posted_by, if available

        Returns:
            Requirement: Domain model instance
        """
        return Requirement(
            id=self.id,
            vehicle_type=self.vehicle_type,
            make=self.make,
            model=self.model,
            year_range_min=self.year_range_min,
            year_range_max=self.year_range_max,
            price_range_min=self.price_range_min,
            price_range_max=self.price_range_max,
            location=self.location,
            description=self.description,
            status=self.status,
            posted_by=self.posted_by,
            created_at=_parse_datetime(self.created_at),
            poster=poster.to_contact() if poster is not None else None,
        )

    @classmethod
    def from_domain(cls, requirement: Requirement) -> "RequirementModel":
        """Create ORM model from domain model."""
        return cls(
            id=requirement.id,
            vehicle_type=requirement.vehicle_type.value,
            make=requirement.make,
            model=requirement.model,
            year_range_min=requirement.year_range_min,
            year_range_max=requirement.year_range_max,
            price_range_min=requirement.price_range_min,
            price_range_max=requirement.price_range_max,
            location=requirement.location,
            description=requirement.description,
            status=requirement.status.value,
            posted_by=requirement.posted_by,
            created_at=_format_datetime(requirement.created_at),
        )


class ProfileStateModel(Base):
    """ORM model for profile_state table.

    Key-value entries scoped to one browser profile (pending match slot and
    dismissal flags).
    """

    __tablename__ = "profile_state"

    # Composite primary key
    profile_id = Column(String(128), primary_key=True, nullable=False)
    key = Column(String(512), primary_key=True, nullable=False)

    value = Column(Text, nullable=False)
    updated_at = Column(String(50), nullable=False)


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO 8601 string for database storage.

    Args:
        dt: Datetime object (must be timezone-aware UTC)

    Returns:
        ISO 8601 formatted string or None
    """
    if dt is None:
        return None

    # Ensure datetime is UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime(TIMESTAMP_FORMAT)


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO 8601 string to datetime object.

    Args:
        dt_str: ISO 8601 formatted string

    Returns:
        Timezone-aware datetime in UTC or None
    """
    if dt_str is None or dt_str == "":
        return None

    dt_str = dt_str.rstrip("Z")

    try:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        from sqlalchemy import inspect
        inspector = inspect(engine)
        tables = inspector.get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
