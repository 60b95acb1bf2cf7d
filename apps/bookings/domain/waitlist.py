"""
Waitlist Queue Aggregate

Per-session FIFO of users waiting for a seat. Ordering uses a logical
clock owned by the session (joined_at), never wall-clock time, so two
users joining in the same instant are still strictly ordered. Should two
entries ever carry the same joined_at, the insertion sequence decides.
"""

from dataclasses import dataclass, field
from typing import Collection, List

from shared.domain.base import Aggregate
from apps.bookings.domain.exceptions import AlreadyWaitlisted


@dataclass(kw_only=True, eq=False)
class WaitlistEntry:
    """A user's place in the queue. Position is derived, never stored."""
    id: int | None = None
    user_id: str
    joined_at: int
    booking_id: int | None = None
    sequence: int = 0

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.joined_at, self.sequence)


@dataclass(kw_only=True, eq=False)
class WaitlistQueue(Aggregate):
    """
    Waitlist Queue Aggregate Root (id == class session id)

    Key invariants:
    - entries strictly ordered by (joined_at, sequence)
    - at most one entry per user
    - clock only moves forward

    The repository persists `added` entries, deletes `removed` ones and
    writes the clock back.
    """

    clock: int = 0
    loaded_clock: int | None = None
    entries: List[WaitlistEntry] = field(default_factory=list)
    added: List[WaitlistEntry] = field(default_factory=list, repr=False)
    removed: List[WaitlistEntry] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if self.loaded_clock is None:
            self.loaded_clock = self.clock
        self.entries.sort(key=lambda e: e.sort_key)
        self._next_sequence = max((e.sequence for e in self.entries), default=0)

    def enqueue(self, user_id: str, booking_id: int | None = None) -> WaitlistEntry:
        """
        Append a user at the back of the queue

        Raises:
            AlreadyWaitlisted: If the user already has an entry
        """
        if self.get_entry(user_id) is not None:
            raise AlreadyWaitlisted(
                f"User {user_id} is already waitlisted for class {self.id}"
            )

        self.clock += 1
        self._next_sequence += 1
        entry = WaitlistEntry(
            user_id=user_id,
            joined_at=self.clock,
            booking_id=booking_id,
            sequence=self._next_sequence,
        )
        self.entries.append(entry)
        self.entries.sort(key=lambda e: e.sort_key)
        self.added.append(entry)
        return entry

    def peek(self) -> WaitlistEntry | None:
        return self.entries[0] if self.entries else None

    def dequeue_next(self, skip: Collection[str] = ()) -> WaitlistEntry | None:
        """Remove and return the earliest entry whose user is not in `skip`, or None"""
        entry = next((e for e in self.entries if e.user_id not in skip), None)
        if entry is None:
            return None
        self.entries.remove(entry)
        self._forget(entry)
        return entry

    def remove(self, user_id: str) -> WaitlistEntry | None:
        """Remove a user's entry. Idempotent: returns None if absent."""
        entry = self.get_entry(user_id)
        if entry is None:
            return None
        self.entries.remove(entry)
        self._forget(entry)
        return entry

    def position_of(self, user_id: str) -> int | None:
        """1-based rank by joined_at, or None if not queued"""
        for index, entry in enumerate(self.entries, start=1):
            if entry.user_id == user_id:
                return index
        return None

    def get_entry(self, user_id: str) -> WaitlistEntry | None:
        return next((e for e in self.entries if e.user_id == user_id), None)

    def mark_persisted(self):
        self.added.clear()
        self.removed.clear()
        self.loaded_clock = self.clock

    def _forget(self, entry: WaitlistEntry):
        if entry in self.added:
            self.added.remove(entry)
        else:
            self.removed.append(entry)

    def __len__(self):
        return len(self.entries)

    def __str__(self):
        return f"WaitlistQueue(class={self.id}, waiting={len(self.entries)})"
