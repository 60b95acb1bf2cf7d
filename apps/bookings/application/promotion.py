"""
Waitlist promotion

Moves the earliest waiter into a free seat, passing over waiters whose
promotion fails. Runs inside the caller's unit of work and under the
session row lock the caller already holds, so the seat release and the
promotion that consumes it commit together.
"""

from datetime import datetime
from typing import List, Optional, Set
import logging

from shared.application.uow import DjangoUnitOfWork
from apps.bookings.application.results import WaitlistPromotionInfo
from apps.bookings.domain.exceptions import BookingError, CapacityFull

logger = logging.getLogger(__name__)


class WaitlistPromoter:
    """
    Each promotion runs in its own savepoint. If anything in it fails the
    savepoint rolls back: the seat stays free and the entry stays queued,
    and the next waiter is tried. Failed entries are retried on the next
    release or by reconciliation.

    Callers must have saved their own ledger and queue before calling,
    since the promoter works on fresh copies read under the held lock.
    """

    def __init__(self, session_repo, ledger_repo, waitlist_repo, booking_repo):
        self.session_repo = session_repo
        self.ledger_repo = ledger_repo
        self.waitlist_repo = waitlist_repo
        self.booking_repo = booking_repo

    def promote_next(
        self,
        uow: DjangoUnitOfWork,
        class_id: int,
        now: datetime,
        skip: Optional[Set[str]] = None,
    ) -> Optional[WaitlistPromotionInfo]:
        """
        Promote the earliest waiter that can take a free seat, else None

        A waiter whose promotion fails stays queued and is added to `skip`;
        the next one in line is tried in its place.
        """
        skip = set() if skip is None else skip
        while True:
            tried = len(skip)
            try:
                with uow.savepoint():
                    return self._promote(uow, class_id, now, skip)
            except BookingError as e:
                logger.warning(
                    f"Promotion in class {class_id} rolled back, entry kept queued: "
                    f"{e.__class__.__name__}: {e}"
                )
                if len(skip) == tried:
                    return None

    def fill_free_seats(
        self,
        uow: DjangoUnitOfWork,
        class_id: int,
        now: datetime,
    ) -> List[WaitlistPromotionInfo]:
        """Promote waiters until the class is full or no waiter can be promoted"""
        promotions = []
        skip: Set[str] = set()
        while True:
            info = self.promote_next(uow, class_id, now, skip)
            if info is None:
                break
            promotions.append(info)
        return promotions

    def _promote(self, uow, class_id, now, skip) -> Optional[WaitlistPromotionInfo]:
        session = self.session_repo.get(class_id, lock=True)
        ledger = self.ledger_repo.for_session(session)
        queue = self.waitlist_repo.for_session(session)

        if not ledger.has_free_seat():
            return None

        entry = queue.dequeue_next(skip=skip)
        if entry is None:
            return None
        skip.add(entry.user_id)

        admit = ledger.try_admit()
        if not admit.admitted:
            raise CapacityFull(f"Class {class_id} filled up during promotion")

        booking = self.booking_repo.get(entry.booking_id, lock=True)
        booking.promote(now)

        self.waitlist_repo.save(queue)
        self.ledger_repo.save(ledger)
        self.booking_repo.save(booking)

        uow.collect_events(ledger)
        uow.collect_events(booking)

        logger.info(
            f"Promoted user {entry.user_id} from waitlist of class {class_id} "
            f"(booking {booking.id}, {admit.enrolled_count}/{admit.capacity})"
        )
        return WaitlistPromotionInfo(
            class_id=class_id,
            promoted_user_id=entry.user_id,
            booking_id=booking.id,
        )
