"""Context budget accounting for a single disclosure session.

Two quantities are tracked:
- remaining: capacity not yet committed. Only ever goes down.
- reserved: capacity set aside for a fetch in flight. Committed when the
  fetch succeeds, released when it fails or the session is cancelled.

``available`` (remaining minus reserved) is what a new request may take.
"""

import logging
import threading
from dataclasses import dataclass
from itertools import count
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admission:
    """Outcome of an admit() call."""

    granted: bool
    remaining: int


@dataclass(frozen=True)
class Reservation:
    """Capacity held for a fetch that has not completed yet."""

    id: int
    size: int
    label: str = ""


class ContextBudgetAllocator:
    """Finite capacity that admits content without ever overcommitting.

    Example:
        budget = ContextBudgetAllocator(6100)
        budget.admit(100)            # Admission(granted=True, remaining=6000)

        reservation = budget.reserve(2000, label="python_async")
        if reservation is not None:
            budget.commit(reservation)   # remaining=4000
    """

    def __init__(self, capacity: int):
        """Initialize the allocator.

        Args:
            capacity: Total size units this session may admit

        Raises:
            ValueError: If capacity is negative
        """
        if capacity < 0:
            raise ValueError(f"Budget capacity must be non-negative, got {capacity}")
        self._capacity = capacity
        self._remaining = capacity
        self._reservations: dict[int, Reservation] = {}
        self._ids = count(1)
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"ContextBudgetAllocator(capacity={self._capacity}, "
            f"remaining={self._remaining}, reserved={self.reserved})"
        )

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def remaining(self) -> int:
        """Capacity not yet committed."""
        return self._remaining

    @property
    def reserved(self) -> int:
        with self._lock:
            return self._reserved_unlocked()

    @property
    def available(self) -> int:
        """Capacity a new request may take right now."""
        with self._lock:
            return self._remaining - self._reserved_unlocked()

    def _reserved_unlocked(self) -> int:
        return sum(r.size for r in self._reservations.values())

    @property
    def used(self) -> int:
        """Committed size units."""
        return self._capacity - self._remaining

    @staticmethod
    def _check_size(size: int) -> None:
        if size < 0:
            raise ValueError(f"Requested size must be non-negative, got {size}")

    def fits(self, size: int) -> bool:
        self._check_size(size)
        return size <= self.available

    def admit(self, size: int) -> Admission:
        """Commit size units immediately if they fit.

        Args:
            size: Size units requested

        Returns:
            Admission with granted flag and remaining capacity afterwards
        """
        self._check_size(size)
        with self._lock:
            if size > self._remaining - self._reserved_unlocked():
                logger.debug(f"Admission refused: {size} > {self._remaining - self._reserved_unlocked()}")
                return Admission(granted=False, remaining=self._remaining)
            self._remaining -= size
            return Admission(granted=True, remaining=self._remaining)

    def reserve(self, size: int, label: str = "") -> Optional[Reservation]:
        """Hold size units for a pending fetch.

        Returns:
            Reservation, or None if the size does not fit
        """
        self._check_size(size)
        with self._lock:
            if size > self._remaining - self._reserved_unlocked():
                return None
            reservation = Reservation(id=next(self._ids), size=size, label=label)
            self._reservations[reservation.id] = reservation
            return reservation

    def commit(self, reservation: Reservation) -> Admission:
        """Turn a reservation into committed usage.

        Raises:
            KeyError: If the reservation was already committed or released
        """
        with self._lock:
            held = self._reservations.pop(reservation.id)
            self._remaining -= held.size
            return Admission(granted=True, remaining=self._remaining)

    def release(self, reservation: Reservation) -> None:
        """Give back a reservation that will not be committed. No-op if unknown."""
        with self._lock:
            self._reservations.pop(reservation.id, None)

    def release_all(self) -> int:
        """Release every outstanding reservation.

        Returns:
            Size units released
        """
        with self._lock:
            released = self._reserved_unlocked()
            self._reservations.clear()
        if released:
            logger.debug(f"Released {released} reserved units")
        return released
