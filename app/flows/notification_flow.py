"""Match notification flow for a single page context.

A flow ties together the matching engine, the pending-match store and the
scheduler for one page lifetime:

1. A posted vehicle or requirement is checked right away and, when matches
   exist, handed to the presenter.
2. On home and dashboard pages, ``start()`` schedules a delayed re-check of
   the pending vehicle match left behind by an earlier page.
3. ``dispose()`` ends the page lifetime: the timer is cancelled, late results
   are discarded, and an unresolved vehicle notification is saved as pending.

Nothing here raises to the caller. Failures are logged and the step skipped.
"""

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional, Union

from app.domain.models import (
    CurrentUser,
    Requirement,
    RequirementCriteria,
    VehicleCriteria,
    VehicleListing,
)
from app.logging import get_logger
from app.logging.context import log_context
from app.matching.engine import MatchingEngine
from app.notifications.models import ContactDetails, MatchKind, MatchNotification
from app.notifications.service import build_contact_message, build_whatsapp_link
from app.scheduler.service import CancelToken, Scheduler
from app.state.pending import PendingMatchStore

from .models import (
    DEFAULT_RECHECK_CONTEXTS,
    NotificationState,
    PageContext,
    RequirementPostOutcome,
)

logger = get_logger(__name__, component="flow")

Presenter = Callable[[MatchNotification], None]

DEFAULT_RECHECK_DELAY_SECONDS = 5.0


def _user_id(user: Optional[CurrentUser]) -> Optional[str]:
    return user.id if user is not None else None


class MatchNotificationFlow:
    """Drives match notifications for one page context.

    State transitions happen under a lock, so a delayed re-check landing on
    the scheduler thread and a user action or ``dispose()`` on the caller's
    thread see a consistent state. Engine queries and the presenter run
    outside the lock.
    """

    def __init__(
        self,
        engine: MatchingEngine,
        pending_store: PendingMatchStore,
        scheduler: Scheduler,
        presenter: Optional[Presenter] = None,
        page_context: Union[PageContext, str] = PageContext.HOME,
        recheck_delay_seconds: float = DEFAULT_RECHECK_DELAY_SECONDS,
        recheck_contexts: Optional[Iterable[Union[PageContext, str]]] = None,
        whatsapp_number: Optional[str] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize the flow.

        Args:
            engine: Matching engine owned by this page context
            pending_store: Pending-match slot and dismissal flags
            scheduler: Scheduler used for the delayed re-check
            presenter: Callback receiving notifications to show
            page_context: Page hosting this flow
            recheck_delay_seconds: Delay before the pending re-check runs
            recheck_contexts: Pages that run the re-check (home and dashboard if None)
            whatsapp_number: Destination number for contact links
            logger_instance: Optional logger (defaults to module logger)
        """
        self.engine = engine
        self.pending_store = pending_store
        self.scheduler = scheduler
        self.presenter = presenter
        self.page_context = PageContext(page_context)
        self.recheck_delay_seconds = recheck_delay_seconds
        self.recheck_contexts = frozenset(
            PageContext(c) for c in (recheck_contexts or DEFAULT_RECHECK_CONTEXTS)
        )
        self.whatsapp_number = whatsapp_number
        self.logger = logger_instance or logger

        self._lock = threading.Lock()
        self._state = NotificationState.IDLE
        # State of the current notification, kept while a later check runs
        self._notification_state = NotificationState.IDLE
        self._notification: Optional[MatchNotification] = None
        self._user_id: Optional[str] = None
        self._disposed = False
        self._recheck_token: Optional[CancelToken] = None
        self._rechecked_users: set = set()

    @property
    def state(self) -> NotificationState:
        with self._lock:
            return self._state

    @property
    def notification(self) -> Optional[MatchNotification]:
        with self._lock:
            return self._notification

    @property
    def disposed(self) -> bool:
        with self._lock:
            return self._disposed

    def start(self, user: Optional[CurrentUser]) -> bool:
        """Schedule the pending-match re-check for ``user``.

        Runs at most once per user id for this page context, and only on
        pages that re-check.

        Returns:
            True if a re-check was scheduled
        """
        user_id = _user_id(user)
        if user_id is None or self.page_context not in self.recheck_contexts:
            return False

        with self._lock:
            if self._disposed or user_id in self._rechecked_users:
                return False
            self._rechecked_users.add(user_id)

        with log_context(user_id=user_id, page_context=self.page_context.value):
            try:
                token = self.scheduler.schedule_after(
                    self.recheck_delay_seconds,
                    lambda: self._recheck_pending(user_id),
                    name=f"pending-recheck:{self.page_context.value}",
                )
            except Exception as e:
                self.logger.warning(
                    f"Failed to schedule pending match re-check: {e}",
                    extra={"event": "flow.recheck.schedule_failed", "error_type": type(e).__name__},
                )
                return False

            with self._lock:
                if self._disposed:
                    token.cancel()
                    return False
                self._recheck_token = token

            self.logger.debug(
                f"Pending match re-check scheduled in {self.recheck_delay_seconds}s",
                extra={"event": "flow.recheck.scheduled"},
            )
            return True

    def on_vehicle_posted(
        self, user: Optional[CurrentUser], vehicle: Union[VehicleListing, VehicleCriteria]
    ) -> List[Requirement]:
        """Check a just-posted vehicle against open requirements.

        Returns:
            Matching requirements (empty if none or on failure)
        """
        criteria = vehicle.to_criteria() if isinstance(vehicle, VehicleListing) else vehicle
        user_id = _user_id(user)

        with log_context(user_id=user_id, page_context=self.page_context.value):
            if not self._begin_check():
                return []

            matches = self.engine.check_vehicle_matches(criteria)
            self._finish_check(
                MatchNotification(
                    kind=MatchKind.VEHICLE_MATCHES_REQUIREMENT,
                    criteria=criteria,
                    matches=matches,
                    page_context=self.page_context.value,
                ),
                user_id,
            )
            return matches

    def on_requirement_posted(
        self,
        user: Optional[CurrentUser],
        requirement: Union[Requirement, RequirementCriteria],
    ) -> RequirementPostOutcome:
        """Check a just-posted requirement against active listings.

        A requirement signature the user dismissed permanently is checked but
        not shown.
        """
        criteria = (
            requirement.to_criteria() if isinstance(requirement, Requirement) else requirement
        )
        user_id = _user_id(user)

        with log_context(user_id=user_id, page_context=self.page_context.value):
            if not self._begin_check():
                return RequirementPostOutcome(matches=[], close_form=True)

            matches = self.engine.check_requirement_matches(criteria)

            if matches and self.pending_store.is_requirement_dismissed(user_id, criteria):
                self.logger.info(
                    f"Suppressing {len(matches)} requirement matches dismissed earlier",
                    extra={"event": "flow.notification.suppressed", "kind": "requirement"},
                )
                self._settle()
                return RequirementPostOutcome(matches=matches, close_form=True)

            shown = self._finish_check(
                MatchNotification(
                    kind=MatchKind.REQUIREMENT_MATCHES_VEHICLE,
                    criteria=criteria,
                    matches=matches,
                    page_context=self.page_context.value,
                ),
                user_id,
            )
            return RequirementPostOutcome(matches=matches, close_form=not shown)

    def close(self) -> None:
        """Hide the notification for the rest of this page lifetime."""
        with self._lock:
            if self._notification_state is not NotificationState.SHOWING:
                return
            self._move_notification(NotificationState.DISMISSED)
        self.logger.info(
            "Match notification closed",
            extra={"event": "flow.notification.closed", "page_context": self.page_context.value},
        )

    def dont_show_again(self) -> None:
        """Permanently dismiss the current notification's signature."""
        with self._lock:
            notification = self._notification
            if notification is None or self._notification_state not in (
                NotificationState.SHOWING,
                NotificationState.DISMISSED,
            ):
                return
            self._move_notification(NotificationState.DISMISSED_PERMANENTLY)
            user_id = self._user_id

        if notification.kind is MatchKind.VEHICLE_MATCHES_REQUIREMENT:
            self.pending_store.set_dismissed(user_id, notification.criteria)
            self.pending_store.clear_pending_vehicle_match()
        else:
            self.pending_store.set_requirement_dismissed(user_id, notification.criteria)

        self.logger.info(
            "Match notification dismissed permanently",
            extra={
                "event": "flow.notification.dismissed",
                "kind": notification.kind.value,
                "page_context": self.page_context.value,
            },
        )

    def dispose(self) -> None:
        """End the page lifetime.

        Cancels the pending re-check and discards any check still in flight.
        A vehicle notification that is showing or was closed is saved as the
        pending match so a later page can offer it again.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            token, self._recheck_token = self._recheck_token, None
            notification = self._notification
            state = self._notification_state

        if token is not None:
            token.cancel()

        if (
            notification is not None
            and notification.kind is MatchKind.VEHICLE_MATCHES_REQUIREMENT
            and state in (NotificationState.SHOWING, NotificationState.DISMISSED)
        ):
            self.pending_store.set_pending_vehicle_match(notification.criteria)

        self.logger.debug(
            "Page context disposed",
            extra={
                "event": "flow.disposed",
                "page_context": self.page_context.value,
                "state": state.value,
            },
        )

    def contact_message(self, match: Any, contact: ContactDetails) -> str:
        """Build the contact message for a match in the current notification."""
        notification = self.notification
        if notification is None:
            raise ValueError("No match notification to contact from")
        return build_contact_message(notification.kind, match, contact)

    def contact_link(self, match: Any, contact: ContactDetails) -> str:
        """Build a WhatsApp link carrying the contact message."""
        if not self.whatsapp_number:
            raise ValueError("No WhatsApp number configured")
        return build_whatsapp_link(self.whatsapp_number, self.contact_message(match, contact))

    def _recheck_pending(self, user_id: str) -> None:
        """Re-check the pending vehicle match (runs on the scheduler thread)."""
        with log_context(user_id=user_id, page_context=self.page_context.value):
            with self._lock:
                if self._disposed:
                    return
                self._recheck_token = None

            criteria = self.pending_store.get_pending_vehicle_match()
            if criteria is None:
                return

            if self.pending_store.is_dismissed(user_id, criteria):
                self.logger.info(
                    "Pending match was dismissed permanently, clearing it",
                    extra={"event": "flow.recheck.dismissed"},
                )
                self.pending_store.clear_pending_vehicle_match()
                return

            if not self._begin_check():
                return

            matches = self.engine.check_partial_matches(criteria)
            if not matches:
                if not self._settle():
                    return
                self.logger.info(
                    "Pending match has no counterparts any more, clearing it",
                    extra={"event": "flow.recheck.empty"},
                )
                self.pending_store.clear_pending_vehicle_match()
                return

            self._finish_check(
                MatchNotification(
                    kind=MatchKind.VEHICLE_MATCHES_REQUIREMENT,
                    criteria=criteria,
                    matches=matches,
                    page_context=self.page_context.value,
                ),
                user_id,
            )

    def _begin_check(self) -> bool:
        with self._lock:
            if self._disposed:
                return False
            self._state = NotificationState.CHECKING
            return True

    def _settle(self) -> bool:
        """End a check that shows nothing, falling back to the current notification."""
        with self._lock:
            if self._disposed:
                return False
            self._state = self._notification_state
            return True

    def _move_notification(self, state: NotificationState) -> None:
        # Caller holds the lock. A check in flight keeps CHECKING until it settles.
        self._notification_state = state
        if self._state is not NotificationState.CHECKING:
            self._state = state

    def _finish_check(self, notification: MatchNotification, user_id: Optional[str]) -> bool:
        """Apply a completed check. Returns True if the notification was shown."""
        with self._lock:
            if self._disposed:
                self.logger.debug(
                    "Discarding match result for disposed page context",
                    extra={"event": "flow.result.discarded", "kind": notification.kind.value},
                )
                return False
            if not notification.matches:
                self._state = self._notification_state
                return False
            self._notification = notification
            self._user_id = user_id
            self._notification_state = NotificationState.SHOWING
            self._state = NotificationState.SHOWING

        self.logger.info(
            f"Showing {notification.count} matches",
            extra={
                "event": "flow.notification.shown",
                "kind": notification.kind.value,
                "match_count": notification.count,
            },
        )
        self._present(notification)
        return True

    def _present(self, notification: MatchNotification) -> None:
        if self.presenter is None:
            return
        try:
            self.presenter(notification)
        except Exception as e:
            self.logger.error(
                f"Presenter failed: {e}",
                exc_info=True,
                extra={"event": "flow.presenter.failed", "error_type": type(e).__name__},
            )
