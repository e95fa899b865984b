"""Listing alert orchestration.

The pet-creation handler calls on_listing_created(); the listing is
snapshotted on the caller's thread and the match-and-notify cycle runs on
the background runner. Nothing raised inside a cycle reaches the caller.
"""

import threading
import time
from collections import deque
from typing import Any, Deque, List, Mapping, Optional, Set, Union
from uuid import uuid4

from pet_alerts.config.models import AppConfig
from pet_alerts.domain.models import ListingCreatedEvent, ListingSnapshot
from pet_alerts.logging import get_logger
from pet_alerts.logging.context import log_context
from pet_alerts.matching.engine import PreferenceMatcher
from pet_alerts.matching.selector import CandidateSelector
from pet_alerts.normalization.exceptions import MalformedListingSnapshot
from pet_alerts.normalization.service import build_listing_snapshot
from pet_alerts.notifications.sender import NotificationSender
from pet_alerts.notifications.service import NotificationDispatcher
from pet_alerts.persistence.exceptions import StoreUnavailable
from pet_alerts.scheduler.service import BackgroundRunner

from .models import CycleResult, CycleState, CycleStatus

logger = get_logger(__name__, component="orchestrator")

ListingEvent = Union[ListingCreatedEvent, Mapping[str, Any]]


class ListingAlertOrchestrator:
    """
    Runs one match-and-notify cycle per new listing in the background.

    A listing with a cycle already in flight is not scheduled again, so a
    redelivered event cannot notify the same recipients twice concurrently.
    """

    def __init__(
        self,
        selector: CandidateSelector,
        dispatcher: NotificationDispatcher,
        runner: Optional[BackgroundRunner] = None,
        history_size: int = 100,
    ):
        """
        Initialize the orchestrator.

        Args:
            selector: Finds matching preference records
            dispatcher: Sends notifications to the matched recipients
            runner: Background executor for cycles (creates a default if None)
            history_size: Number of finished CycleResults kept for inspection
        """
        self.selector = selector
        self.dispatcher = dispatcher
        self.runner = runner or BackgroundRunner()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._in_flight: Set[str] = set()
        self._history: Deque[CycleResult] = deque(maxlen=history_size)

    @classmethod
    def from_config(cls, app_config: AppConfig, sender: NotificationSender) -> "ListingAlertOrchestrator":
        """Wire selector, dispatcher and runner from application configuration."""
        matcher = PreferenceMatcher(empty_facet=app_config.matching.empty_facet)
        dispatcher = NotificationDispatcher.from_config(
            sender, app_config.dispatch, email_config=app_config.email
        )
        return cls(
            selector=CandidateSelector(matcher),
            dispatcher=dispatcher,
            runner=BackgroundRunner(worker_count=app_config.dispatch.cycle_workers),
        )

    def start(self) -> None:
        self.runner.start()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting cycles. With wait, block until running cycles finish."""
        self.runner.shutdown(wait=wait)

    def on_listing_created(self, event: ListingEvent) -> bool:
        """
        Schedule alerts for a newly created listing and return immediately.

        Never raises. Malformed events, listings already in flight and
        scheduling failures are logged and reported as False.

        Args:
            event: ListingCreatedEvent or the raw listing mapping

        Returns:
            True if a cycle was scheduled
        """
        try:
            snapshot = build_listing_snapshot(event)
        except MalformedListingSnapshot as e:
            logger.warning(
                f"Listing event rejected: {e}",
                extra={
                    "event": "listing.rejected",
                    "listing_id": e.listing_id,
                    "fields": e.fields,
                },
            )
            return False
        except Exception as e:
            logger.error(
                f"Listing event could not be snapshotted: {e}",
                exc_info=True,
                extra={"event": "listing.rejected", "error_type": type(e).__name__},
            )
            return False

        listing_id = snapshot.listing_id
        with self._lock:
            if listing_id in self._in_flight:
                logger.info(
                    f"Cycle for listing {listing_id} already in flight; event ignored",
                    extra={"event": "cycle.skipped", "listing_id": listing_id, "reason": "in_flight"},
                )
                return False
            self._in_flight.add(listing_id)

        try:
            self.runner.submit(self._run_tracked, snapshot, name=f"listing-alerts:{listing_id}")
        except Exception as e:
            self._finish(listing_id, None)
            logger.error(
                f"Could not schedule cycle for listing {listing_id}: {e}",
                exc_info=True,
                extra={"event": "cycle.schedule_failed", "listing_id": listing_id},
            )
            return False

        logger.info(
            f"Cycle scheduled for listing {listing_id}",
            extra={"event": "cycle.scheduled", "listing_id": listing_id},
        )
        return True

    def run_cycle(self, listing: ListingSnapshot) -> CycleResult:
        """
        Select candidates for listing and notify them.

        Idle -> Selecting -> Dispatching -> Idle. A store failure while
        selecting, or any unexpected error, abandons the cycle.

        Args:
            listing: Snapshot captured when the event arrived

        Returns:
            CycleResult describing the cycle
        """
        cycle_id = uuid4().hex
        started = time.monotonic()
        state = CycleState.IDLE

        with log_context(cycle_id=cycle_id, listing_id=listing.listing_id):
            logger.info(
                f"Cycle started for listing {listing.listing_id}",
                extra={"event": "cycle.started"},
            )

            try:
                state = CycleState.SELECTING
                candidates = list(self.selector.select_candidates(listing))

                logger.info(
                    f"Selected {len(candidates)} candidates",
                    extra={"event": "cycle.candidates.selected", "candidate_count": len(candidates)},
                )

                state = CycleState.DISPATCHING
                outcomes = self.dispatcher.dispatch_all(
                    [candidate.recipient for candidate in candidates], listing
                )

            except StoreUnavailable as e:
                return self._abandon(listing, state, started, e, exc_info=False)
            except Exception as e:
                return self._abandon(listing, state, started, e, exc_info=True)

            result = CycleResult(
                listing_id=listing.listing_id,
                status=CycleStatus.COMPLETED,
                final_state=state,
                candidate_count=len(candidates),
                outcomes=outcomes,
                duration_seconds=time.monotonic() - started,
            )

            logger.info(
                f"Cycle completed for listing {listing.listing_id}: "
                f"{result.delivered_count} delivered, {result.failed_count} failed",
                extra={
                    "event": "cycle.completed",
                    "candidate_count": result.candidate_count,
                    "delivered_count": result.delivered_count,
                    "failed_count": result.failed_count,
                    "duplicate_count": result.duplicate_count,
                    "duration_ms": int(result.duration_seconds * 1000),
                },
            )
            return result

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no cycle is in flight. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._in_flight, timeout=timeout)

    def in_flight(self) -> Set[str]:
        with self._lock:
            return set(self._in_flight)

    def recent_results(self) -> List[CycleResult]:
        """Finished cycles, oldest first."""
        with self._lock:
            return list(self._history)

    def _run_tracked(self, listing: ListingSnapshot) -> None:
        result = None
        try:
            result = self.run_cycle(listing)
        finally:
            self._finish(listing.listing_id, result)

    def _finish(self, listing_id: str, result: Optional[CycleResult]) -> None:
        with self._idle:
            self._in_flight.discard(listing_id)
            if result is not None:
                self._history.append(result)
            self._idle.notify_all()

    def _abandon(
        self,
        listing: ListingSnapshot,
        state: CycleState,
        started: float,
        error: Exception,
        exc_info: bool,
    ) -> CycleResult:
        result = CycleResult(
            listing_id=listing.listing_id,
            status=CycleStatus.ABANDONED,
            final_state=state,
            duration_seconds=time.monotonic() - started,
            error=str(error),
        )
        logger.error(
            f"Cycle abandoned for listing {listing.listing_id} while {state.value}: {error}",
            exc_info=exc_info,
            extra={
                "event": "cycle.abandoned",
                "state": state.value,
                "error_type": type(error).__name__,
                "duration_ms": int(result.duration_seconds * 1000),
            },
        )
        return result
