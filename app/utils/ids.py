"""Identifier generation for new listings and requirements."""

from uuid import uuid4


def new_record_id() -> str:
    """Return a new random record id (UUID4, canonical string form)."""
    return str(uuid4())
