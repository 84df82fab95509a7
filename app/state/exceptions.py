"""Exceptions for profile state storage."""


class StateStoreError(Exception):
    """Raised when the key-value store cannot be read or written."""

    pass
