from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

# Seat order is clockwise by index; every walk wraps modulo the table size.

SeatFilter = Callable[[int], bool]


@dataclass(frozen=True)
class SeatRing:
    size: int = 4

    def step(self, seat: int, offset: int = 1) -> int:
        return (seat + offset) % self.size

    def rotation_from(self, start: int) -> List[int]:
        """All seats once, beginning at ``start``."""
        return [self.step(start, offset) for offset in range(self.size)]

    def next_after(self, seat: int, eligible: SeatFilter) -> Optional[int]:
        """First eligible seat strictly after ``seat``; ``seat`` itself is never returned."""
        for candidate in self.rotation_from(self.step(seat))[: self.size - 1]:
            if eligible(candidate):
                return candidate
        return None

    def first_from(self, seat: int, eligible: SeatFilter) -> Optional[int]:
        """First eligible seat at or after ``seat``."""
        for candidate in self.rotation_from(seat):
            if eligible(candidate):
                return candidate
        return None
