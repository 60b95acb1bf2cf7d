"""
Capacity Ledger Aggregate

This is the CRITICAL aggregate for preventing over-admission.
Every seat taken or given back in a class session MUST go through it.

The ledger is the consistency boundary for one session's enrolled count:
0 <= enrolled_count <= capacity at all times.

Strategy (Defense in Depth):
1. Domain validation: try_admit() refuses when the session is full
2. Pessimistic locking: SELECT FOR UPDATE on the session row
3. Compare-and-set write: UPDATE ... WHERE enrolled_count = <loaded value>
4. Database CHECK constraint on enrolled_count
"""

from dataclasses import dataclass

from shared.domain.base import Aggregate
from apps.bookings.domain.events import SeatAdmitted, SeatReleased


@dataclass(frozen=True)
class AdmitResult:
    """Outcome of an admission attempt"""
    admitted: bool
    enrolled_count: int
    capacity: int


@dataclass(kw_only=True, eq=False)
class CapacityLedger(Aggregate):
    """
    Capacity Ledger Aggregate Root

    Seat accounting for a single class session (id == class session id).

    Key invariants:
    - enrolled_count never exceeds capacity
    - enrolled_count never drops below zero
    - loaded_count remembers the persisted value for the CAS write

    Usage:
        # Load ledger for the session (row locked)
        session = session_repo.get(class_id, lock=True)
        ledger = ledger_repo.for_session(session)

        result = ledger.try_admit()
        if result.admitted:
            ledger_repo.save(ledger)
    """

    capacity: int
    enrolled_count: int = 0
    loaded_count: int | None = None

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError("Capacity must be a positive integer")
        if not 0 <= self.enrolled_count <= self.capacity:
            raise ValueError(
                f"Enrolled count {self.enrolled_count} out of bounds "
                f"for capacity {self.capacity}"
            )
        if self.loaded_count is None:
            self.loaded_count = self.enrolled_count

    def has_free_seat(self) -> bool:
        return self.enrolled_count < self.capacity

    def try_admit(self) -> AdmitResult:
        """
        Take one seat if any is free

        Returns admitted=False without mutation when the session is full.
        """
        if not self.has_free_seat():
            return AdmitResult(False, self.enrolled_count, self.capacity)

        self.enrolled_count += 1
        self.add_event(SeatAdmitted(
            aggregate_id=self.id,
            class_id=self.id,
            enrolled_count=self.enrolled_count,
            capacity=self.capacity,
        ))
        return AdmitResult(True, self.enrolled_count, self.capacity)

    def release(self) -> int:
        """
        Give one seat back, floored at zero

        Returns the new enrolled count.
        """
        if self.enrolled_count == 0:
            return 0

        self.enrolled_count -= 1
        self.add_event(SeatReleased(
            aggregate_id=self.id,
            class_id=self.id,
            enrolled_count=self.enrolled_count,
            capacity=self.capacity,
        ))
        return self.enrolled_count

    @property
    def is_dirty(self) -> bool:
        return self.enrolled_count != self.loaded_count

    def mark_persisted(self):
        self.loaded_count = self.enrolled_count

    def __str__(self):
        return f"CapacityLedger(class={self.id}, {self.enrolled_count}/{self.capacity})"
