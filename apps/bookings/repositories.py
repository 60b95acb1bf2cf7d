"""Repositories for the booking aggregates.

Each repository loads an aggregate from its rows and writes it back with a
compare-and-set on the value it loaded, so a concurrent writer that slipped
past the row lock (or a database without SELECT FOR UPDATE) surfaces as
StaleWrite instead of a lost update.
"""

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction  # type: ignore

from shared.infrastructure.locking import lock_queryset_if_possible
from apps.bookings.domain.entities import BookingRecord, BookingStatus
from apps.bookings.domain.exceptions import BookingNotFound, ClassNotFound, StaleWrite
from apps.bookings.domain.ledger import CapacityLedger
from apps.bookings.domain.waitlist import WaitlistEntry, WaitlistQueue
from apps.bookings.models import Booking, IdempotencyRecord, WaitlistEntry as WaitlistEntryRow
from apps.classes.models import ClassSession

logger = logging.getLogger(__name__)


class ClassSessionRepository:
    """Read access to sessions owned by the scheduling side."""

    def get(self, class_id: int, *, lock: bool = False) -> ClassSession:
        """
        Load a session, optionally taking its row lock

        The row lock is the per-session critical section: every write to
        the seat counter or the waitlist of this session happens under it.
        """
        queryset = ClassSession.objects.filter(pk=class_id)
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        session = queryset.first()
        if session is None:
            raise ClassNotFound(f"Class session {class_id} not found")
        return session


class CapacityLedgerRepository:
    def for_session(self, session: ClassSession) -> CapacityLedger:
        return CapacityLedger(
            id=session.pk,
            capacity=session.capacity,
            enrolled_count=session.enrolled_count,
        )

    def save(self, ledger: CapacityLedger) -> None:
        """Compare-and-set the enrolled count"""
        if not ledger.is_dirty:
            return

        updated = ClassSession.objects.filter(
            pk=ledger.id,
            enrolled_count=ledger.loaded_count,
        ).update(enrolled_count=ledger.enrolled_count)

        if updated == 0:
            raise StaleWrite(
                f"Enrolled count of class {ledger.id} changed concurrently "
                f"(expected {ledger.loaded_count})"
            )
        ledger.mark_persisted()


class WaitlistRepository:
    def for_session(self, session: ClassSession) -> WaitlistQueue:
        rows = WaitlistEntryRow.objects.filter(class_session_id=session.pk).order_by("joined_at", "id")
        entries = [
            WaitlistEntry(
                id=row.id,
                user_id=row.user_id,
                joined_at=row.joined_at,
                booking_id=row.booking_id,
                sequence=row.id,
            )
            for row in rows
        ]
        return WaitlistQueue(id=session.pk, clock=session.waitlist_clock, entries=entries)

    def save(self, queue: WaitlistQueue) -> None:
        removed_ids = [entry.id for entry in queue.removed if entry.id is not None]
        if removed_ids:
            WaitlistEntryRow.objects.filter(pk__in=removed_ids).delete()

        for entry in queue.added:
            try:
                with transaction.atomic():
                    row = WaitlistEntryRow.objects.create(
                        class_session_id=queue.id,
                        user_id=entry.user_id,
                        booking_id=entry.booking_id,
                        joined_at=entry.joined_at,
                    )
            except IntegrityError as e:
                raise StaleWrite(
                    f"Waitlist entry for user {entry.user_id} in class {queue.id} "
                    f"was written concurrently"
                ) from e
            entry.id = row.id
            entry.sequence = row.id

        if queue.clock != queue.loaded_clock:
            updated = ClassSession.objects.filter(
                pk=queue.id,
                waitlist_clock=queue.loaded_clock,
            ).update(waitlist_clock=queue.clock)
            if updated == 0:
                raise StaleWrite(f"Waitlist clock of class {queue.id} changed concurrently")

        queue.mark_persisted()


class BookingRepository:
    def get(self, booking_id: int, *, lock: bool = False) -> BookingRecord:
        queryset = Booking.objects.filter(pk=booking_id)
        if lock:
            queryset = lock_queryset_if_possible(queryset)
        row = queryset.first()
        if row is None:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return self._to_domain(row)

    def find_for_user(self, class_id: int, user_id: str) -> list[BookingRecord]:
        """All records for the pair, tombstones included, oldest first"""
        rows = Booking.objects.filter(class_session_id=class_id, user_id=user_id).order_by("created_at", "id")
        return [self._to_domain(row) for row in rows]

    def find_live(self, class_id: int, user_id: str) -> BookingRecord | None:
        """The single non-CANCELLED record for the pair, if any"""
        row = (
            Booking.objects.filter(class_session_id=class_id, user_id=user_id)
            .exclude(status=Booking.Status.CANCELLED)
            .first()
        )
        return self._to_domain(row) if row else None

    def save(self, record: BookingRecord) -> None:
        if record.id is None:
            self._insert(record)
        else:
            self._update(record)
        record.loaded_version = record.version

    def _insert(self, record: BookingRecord) -> None:
        try:
            with transaction.atomic():
                row = Booking.objects.create(
                    class_session_id=record.class_id,
                    user_id=record.user_id,
                    status=record.status.value,
                    cancelled_from=record.cancelled_from.value if record.cancelled_from else "",
                    last_status_reason=record.last_status_reason,
                    status_changed_at=record.status_changed_at,
                    version=record.version,
                    created_at=record.created_at,
                )
        except IntegrityError as e:
            raise StaleWrite(
                f"Booking for user {record.user_id} in class {record.class_id} "
                f"was created concurrently"
            ) from e

        record.id = row.pk
        # Events raised before the row existed carry no id yet
        for event in record.events:
            if getattr(event, "booking_id", 0) is None:
                event.booking_id = row.pk
            if event.aggregate_id is None:
                event.aggregate_id = row.pk

    def _update(self, record: BookingRecord) -> None:
        updated = Booking.objects.filter(
            pk=record.id,
            version=record.loaded_version,
        ).update(
            status=record.status.value,
            cancelled_from=record.cancelled_from.value if record.cancelled_from else "",
            last_status_reason=record.last_status_reason,
            status_changed_at=record.status_changed_at,
            version=record.version,
        )
        if updated == 0:
            raise StaleWrite(
                f"Booking {record.id} was modified concurrently "
                f"(expected version {record.loaded_version})"
            )

    @staticmethod
    def _to_domain(row: Booking) -> BookingRecord:
        return BookingRecord(
            id=row.pk,
            class_id=row.class_session_id,
            user_id=row.user_id,
            status=BookingStatus(row.status),
            created_at=row.created_at,
            status_changed_at=row.status_changed_at,
            last_status_reason=row.last_status_reason,
            cancelled_from=BookingStatus(row.cancelled_from) if row.cancelled_from else None,
            version=row.version,
        )


class IdempotencyStore:
    """
    Remembers the response of a mutating request per (key, operation, user)

    The record is written inside the same transaction as the side effect,
    so either both persist or neither does.
    """

    def lookup(self, key: str | None, operation: str, user_id: str) -> dict | None:
        if not key:
            return None
        return (
            IdempotencyRecord.objects.filter(key=key, operation=operation, user_id=user_id)
            .values_list("response", flat=True)
            .first()
        )

    def store(self, key: str | None, operation: str, user_id: str, response: dict) -> None:
        if not key:
            return
        try:
            with transaction.atomic():
                IdempotencyRecord.objects.create(
                    key=key,
                    operation=operation,
                    user_id=user_id,
                    response=response,
                )
        except IntegrityError as e:
            # A concurrent request with the same key won; retrying replays its response
            raise StaleWrite(f"Request {operation}:{key} is being processed concurrently") from e
