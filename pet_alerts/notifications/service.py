"""Notification dispatcher for new-listing alerts.

This module provides the NotificationDispatcher, which turns matched
preference records into per-recipient notifications: optional ledger
deduplication, template data, a single send attempt, and a ledger write
on success. Batches run at most max_workers sends at a time, each with its
own timeout.
"""

import contextvars
import logging
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, ContextManager, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pet_alerts.config.models import DispatchConfig, EmailConfig
from pet_alerts.domain.models import ListingSnapshot, Recipient
from pet_alerts.logging import get_logger
from pet_alerts.logging.context import log_context
from pet_alerts.persistence.database import get_session
from pet_alerts.persistence.exceptions import PersistenceError
from pet_alerts.persistence.repositories import ListingAlertRepository
from pet_alerts.utils.timestamps import utc_now

from .models import DispatchFailure, DispatchTimeout, NotificationOutcome, TemplateKind
from .payloads import build_template_data
from .sender import NotificationSender

logger = get_logger(__name__, component="notification")

SessionProvider = Callable[[], ContextManager[Session]]


class NotificationDispatcher:
    """Sends one notification per recipient and reports an outcome for each.

    A failed send never affects other recipients. There is no retry; each
    recipient gets exactly one attempt per listing.
    """

    def __init__(
        self,
        sender: NotificationSender,
        email_config: Optional[EmailConfig] = None,
        max_workers: int = 4,
        timeout_seconds: float = 30.0,
        deduplicate: bool = True,
        session_provider: SessionProvider = get_session,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize notification dispatcher.

        Args:
            sender: Notification-send collaborator
            email_config: Email settings used for template data (listing URL)
            max_workers: Concurrent sends within one batch
            timeout_seconds: Time allowed for one send, measured from when it starts
            deduplicate: Consult and write the (listing, user) ledger
            session_provider: Context manager factory yielding a Session
            logger_instance: Logger instance (uses module logger if None)
        """
        self.sender = sender
        self.email_config = email_config or EmailConfig()
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds
        self.deduplicate = deduplicate
        self.session_provider = session_provider
        self.logger = logger_instance or logger

    @classmethod
    def from_config(
        cls,
        sender: NotificationSender,
        dispatch_config: DispatchConfig,
        email_config: Optional[EmailConfig] = None,
        session_provider: SessionProvider = get_session,
    ) -> "NotificationDispatcher":
        return cls(
            sender,
            email_config=email_config,
            max_workers=dispatch_config.max_workers,
            timeout_seconds=dispatch_config.timeout_seconds,
            deduplicate=dispatch_config.deduplicate,
            session_provider=session_provider,
        )

    def dispatch(self, recipient: Recipient, listing: ListingSnapshot) -> NotificationOutcome:
        """Notify one recipient about one listing.

        Never raises; every failure is reported in the returned outcome.

        Args:
            recipient: Who to notify
            listing: The matched listing

        Returns:
            NotificationOutcome for this recipient
        """
        user_id = recipient.user_id
        listing_id = listing.listing_id

        with log_context(user_id=user_id, listing_id=listing_id):
            if self.deduplicate and self._already_sent(listing_id, user_id):
                self.logger.info(
                    f"Skipping notification for user {user_id} - already notified about {listing_id}",
                    extra={"event": "notification.duplicate"},
                )
                return NotificationOutcome(
                    user_id=user_id,
                    listing_id=listing_id,
                    delivered=False,
                    duplicate=True,
                )

            try:
                template_data = build_template_data(recipient, listing, self.email_config)
                self.sender.send(recipient, TemplateKind.NEW_LISTING_MATCH, template_data)
            except DispatchFailure as e:
                self.logger.error(
                    f"Notification failed for user {user_id}: {e}",
                    extra={"event": "notification.send.failure", "error_kind": e.kind},
                )
                return NotificationOutcome.failure(user_id, listing_id, e)
            except Exception as e:
                self.logger.error(
                    f"Unexpected error notifying user {user_id}: {e}",
                    exc_info=True,
                    extra={"event": "notification.send.failure", "error_kind": "unexpected"},
                )
                return NotificationOutcome.failure(user_id, listing_id, e)

            self.logger.info(
                f"Notification sent to user {user_id} for listing {listing_id}",
                extra={"event": "notification.send.success"},
            )

            if self.deduplicate:
                self._record_sent(listing_id, user_id)

            return NotificationOutcome(user_id=user_id, listing_id=listing_id, delivered=True)

    def dispatch_all(
        self, recipients: Iterable[Recipient], listing: ListingSnapshot
    ) -> List[NotificationOutcome]:
        """Notify every recipient, at most max_workers at a time.

        Each send gets timeout_seconds from the moment it starts. A send that
        overruns is reported as failed with error_kind "timeout" and its slot
        goes to the next queued recipient; the stuck thread is not interrupted.

        Args:
            recipients: Recipients to notify
            listing: The matched listing

        Returns:
            One NotificationOutcome per recipient, in input order
        """
        recipients = list(recipients)
        if not recipients:
            self.logger.info(
                f"No recipients for listing {listing.listing_id}",
                extra={"event": "notification.batch.empty", "listing_id": listing.listing_id},
            )
            return []

        outcomes: List[Optional[NotificationOutcome]] = [None] * len(recipients)
        queued = deque(enumerate(recipients))
        running: Dict[Future, Tuple[int, float]] = {}
        overrun: List[Future] = []

        # Sized for the whole batch so timed-out sends cannot starve queued ones;
        # at most max_workers sends are active at any time.
        executor = ThreadPoolExecutor(max_workers=len(recipients), thread_name_prefix="dispatch")
        try:
            while queued or running:
                while queued and len(running) < self.max_workers:
                    index, recipient = queued.popleft()
                    # Each send runs in a copy of the caller's context so log_context fields carry over
                    future = executor.submit(
                        contextvars.copy_context().run, self.dispatch, recipient, listing
                    )
                    running[future] = (index, time.monotonic())

                next_expiry = min(started for _, started in running.values()) + self.timeout_seconds
                done, _ = wait(
                    running,
                    timeout=max(0.0, next_expiry - time.monotonic()),
                    return_when=FIRST_COMPLETED,
                )

                for future in done:
                    index, _ = running.pop(future)
                    outcomes[index] = future.result()

                now = time.monotonic()
                for future, (index, started) in list(running.items()):
                    if now - started >= self.timeout_seconds:
                        del running[future]
                        overrun.append(future)
                        outcomes[index] = self._timed_out(recipients[index], listing)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        still_running = sum(1 for future in overrun if not future.done())
        if still_running:
            self.logger.warning(
                f"{still_running} timed-out sends still running for listing {listing.listing_id}",
                extra={
                    "event": "notification.batch.sends_outstanding",
                    "listing_id": listing.listing_id,
                    "outstanding": still_running,
                },
            )

        self._log_summary(listing, outcomes)
        return outcomes

    def _timed_out(self, recipient: Recipient, listing: ListingSnapshot) -> NotificationOutcome:
        error = DispatchTimeout(
            f"Notification for user {recipient.user_id} did not finish within "
            f"{self.timeout_seconds:.1f}s"
        )
        self.logger.error(
            str(error),
            extra={
                "event": "notification.send.failure",
                "error_kind": error.kind,
                "user_id": recipient.user_id,
                "listing_id": listing.listing_id,
            },
        )
        return NotificationOutcome.failure(recipient.user_id, listing.listing_id, error)

    def _already_sent(self, listing_id: str, user_id: str) -> bool:
        try:
            with self.session_provider() as session:
                return ListingAlertRepository(session).has_been_sent(listing_id, user_id)
        except (PersistenceError, SQLAlchemyError) as e:
            # Ledger is best-effort; an unreadable ledger does not block the send
            self.logger.warning(
                f"Could not read alert ledger for user {user_id}: {e}",
                extra={"event": "notification.ledger.unavailable"},
            )
            return False

    def _record_sent(self, listing_id: str, user_id: str) -> None:
        try:
            with self.session_provider() as session:
                ListingAlertRepository(session).record_alert(listing_id, user_id, utc_now())
        except (PersistenceError, SQLAlchemyError) as e:
            self.logger.warning(
                f"Could not record alert for user {user_id}: {e}",
                extra={"event": "notification.ledger.unavailable"},
            )

    def _log_summary(self, listing: ListingSnapshot, outcomes: List[NotificationOutcome]) -> None:
        delivered = sum(1 for o in outcomes if o.delivered)
        duplicates = sum(1 for o in outcomes if o.duplicate)
        failed = sum(1 for o in outcomes if o.failed)

        self.logger.info(
            f"Notification batch complete for listing {listing.listing_id}: "
            f"{delivered} sent, {duplicates} duplicates, {failed} failed (total: {len(outcomes)})",
            extra={
                "event": "notification.batch.completed",
                "listing_id": listing.listing_id,
                "delivered": delivered,
                "duplicates": duplicates,
                "failed": failed,
                "total": len(outcomes),
            },
        )
