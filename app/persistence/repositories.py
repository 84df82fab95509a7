"""Data access layer (repositories) for persistence operations.

This module provides repository classes for listings, requirements, users and
per-profile key-value state. Repositories encapsulate database operations and
return domain models rather than ORM models.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.models import (
    ListingStatus,
    Requirement,
    RequirementStatus,
    VehicleListing,
)

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    TIMESTAMP_FORMAT,
    ProfileStateModel,
    RequirementModel,
    UserModel,
    VehicleListingModel,
)

logger = logging.getLogger(__name__)


class ListingRepository:
    """Repository for vehicle listing operations."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def insert(self, listing: VehicleListing) -> VehicleListing:
        """Insert a new listing.

        Args:
            listing: VehicleListing domain model to persist

        Returns:
            Persisted VehicleListing domain model

        Raises:
            DataIntegrityError: If a listing with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            listing_model = VehicleListingModel.from_domain(listing)
            self.session.add(listing_model)
            self.session.flush()
            return listing_model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error inserting listing {listing.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert listing due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting listing {listing.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert listing: {e}") from e

    def update_status(self, listing_id: str, status: ListingStatus) -> VehicleListing:
        """Change a listing's status (e.g. pending -> active after moderation).

        Raises:
            RecordNotFoundError: If listing_id doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            listing_model = self.session.get(VehicleListingModel, listing_id)
            if listing_model is None:
                raise RecordNotFoundError(f"Listing with id {listing_id} not found")

            listing_model.status = ListingStatus(status).value
            self.session.flush()
            return listing_model.to_domain()

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating status for listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update listing status: {e}") from e


class RequirementRepository:
    """Repository for buyer requirement operations."""

    def __init__(self, session: Session):
        self.session = session

    def insert(self, requirement: Requirement) -> Requirement:
        """Insert a new requirement.

        Raises:
            DataIntegrityError: If a requirement with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            requirement_model = RequirementModel.from_domain(requirement)
            self.session.add(requirement_model)
            self.session.flush()
            return requirement_model.to_domain()
        except IntegrityError as e:
            logger.error(
                f"Integrity error inserting requirement {requirement.id}: {e}", exc_info=True
            )
            raise DataIntegrityError(
                f"Failed to insert requirement due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting requirement {requirement.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert requirement: {e}") from e

    def update_status(self, requirement_id: str, status: RequirementStatus) -> Requirement:
        """Change a requirement's status (open, matched, closed).

        Raises:
            RecordNotFoundError: If requirement_id doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            requirement_model = self.session.get(RequirementModel, requirement_id)
            if requirement_model is None:
                raise RecordNotFoundError(f"Requirement with id {requirement_id} not found")

            requirement_model.status = RequirementStatus(status).value
            self.session.flush()
            return requirement_model.to_domain()

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                f"Error updating status for requirement {requirement_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to update requirement status: {e}") from e


class UserRepository:
    """Repository for the contact details of users."""

    def __init__(self, session: Session):
        self.session = session

    def upsert(
        self,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        status: str = "active",
    ) -> None:
        """Insert a user or update its contact details.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(UserModel, user_id)
            if existing:
                existing.name = name
                existing.email = email
                existing.phone = phone
                existing.status = status
            else:
                self.session.add(
                    UserModel(id=user_id, name=name, email=email, phone=phone, status=status)
                )
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error upserting user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert user: {e}") from e


class ProfileStateRepository:
    """Repository for key-value entries scoped to a browser profile."""

    def __init__(self, session: Session, profile_id: str):
        """Initialize repository.

        Args:
            session: SQLAlchemy session for database operations
            profile_id: Browser profile the entries belong to
        """
        self.session = session
        self.profile_id = profile_id

    def get(self, key: str) -> Optional[str]:
        """Return the stored value for key, or None."""
        try:
            stmt = select(ProfileStateModel.value).where(
                ProfileStateModel.profile_id == self.profile_id,
                ProfileStateModel.key == key,
            )
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error reading profile state {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read profile state: {e}") from e

    def set(self, key: str, value: str, updated_at: datetime) -> None:
        """Insert or overwrite the value for key."""
        try:
            existing = self.session.get(
                ProfileStateModel, {"profile_id": self.profile_id, "key": key}
            )
            stamp = updated_at.strftime(TIMESTAMP_FORMAT)
            if existing:
                existing.value = value
                existing.updated_at = stamp
            else:
                self.session.add(
                    ProfileStateModel(
                        profile_id=self.profile_id, key=key, value=value, updated_at=stamp
                    )
                )
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error writing profile state {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to write profile state: {e}") from e

    def remove(self, key: str) -> int:
        """Delete key; returns number of removed rows (0 or 1)."""
        try:
            stmt = delete(ProfileStateModel).where(
                ProfileStateModel.profile_id == self.profile_id,
                ProfileStateModel.key == key,
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error removing profile state {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to remove profile state: {e}") from e
