"""Key-value stores scoped to one browser profile.

Two implementations share the ``get_item`` / ``set_item`` / ``remove_item``
interface:
- InMemoryKeyValueStore: a dict, for tests and single-process use
- SqlKeyValueStore: rows in the profile_state table, durable across runs
"""

import threading
from typing import Callable, ContextManager, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.logging import get_logger
from app.persistence.database import get_session
from app.persistence.exceptions import PersistenceError
from app.persistence.repositories import ProfileStateRepository
from app.utils.timestamps import utc_now

from .exceptions import StateStoreError

logger = get_logger(__name__, component="state")


class KeyValueStore(Protocol):
    """Synchronous string key-value storage for one browser profile."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class SqlKeyValueStore:
    """Store backed by the profile_state table.

    Every call runs in its own short transaction. Persistence failures are
    re-raised as StateStoreError.
    """

    def __init__(
        self,
        profile_id: str,
        session_factory: Optional[Callable[[], ContextManager[Session]]] = None,
    ):
        """Initialize store.

        Args:
            profile_id: Browser profile whose entries this store reads and writes
            session_factory: Context-manager factory yielding sessions
        """
        if not profile_id:
            raise ValueError("profile_id must be a non-empty string")
        self.profile_id = profile_id
        self.session_factory = session_factory or get_session

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self.session_factory() as session:
                return ProfileStateRepository(session, self.profile_id).get(key)
        except (PersistenceError, SQLAlchemyError) as e:
            raise StateStoreError(f"Failed to read {key}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        try:
            with self.session_factory() as session:
                ProfileStateRepository(session, self.profile_id).set(key, str(value), utc_now())
        except (PersistenceError, SQLAlchemyError) as e:
            raise StateStoreError(f"Failed to write {key}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            with self.session_factory() as session:
                removed = ProfileStateRepository(session, self.profile_id).remove(key)
            logger.debug(
                f"Removed profile state key {key}",
                extra={"event": "state.key.removed", "state_key": key, "removed": removed},
            )
        except (PersistenceError, SQLAlchemyError) as e:
            raise StateStoreError(f"Failed to remove {key}: {e}") from e
