"""
Room layout normalisation.

A room is either an addressable grid of ``benches x seats_per_bench`` or a
flat capacity count. Seat numbers are 1-based and never exceed the room's
capacity.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple

from .exceptions import InvalidRoomLayout


@dataclass(frozen=True)
class LayoutView:
    room: Any
    capacity: int
    benches: int
    seats_per_bench: int

    @property
    def addressable(self) -> bool:
        return self.benches > 0 and self.seats_per_bench > 0

    @property
    def room_no(self) -> str:
        return self.room.room_no

    @property
    def grid_seats(self) -> int:
        """Seats reachable through the grid (capacity still caps them)."""
        if not self.addressable:
            return 0
        return min(self.capacity, self.benches * self.seats_per_bench)

    def row_major_seat(self, bench: int, column: int) -> Optional[int]:
        seat_number = bench * self.seats_per_bench + column + 1
        return seat_number if seat_number <= self.capacity else None

    def column_major_seat(self, bench: int, column: int) -> Optional[int]:
        seat_number = column * self.benches + bench + 1
        return seat_number if seat_number <= self.capacity else None

    def position_of(self, seat_number: int, column_major: bool = False) -> Optional[Tuple[int, int]]:
        """Inverse of the seat numbering: (bench, column), or None outside the grid."""
        if not self.addressable or not 1 <= seat_number <= self.grid_seats:
            return None
        index = seat_number - 1
        if column_major:
            return index % self.benches, index // self.benches
        return index // self.seats_per_bench, index % self.seats_per_bench

    def bench_positions(self, limit: Optional[int] = None) -> Iterator[Tuple[int, int]]:
        """Yield (bench, position) pairs row by row, using at most ``limit`` seats per bench."""
        per_bench = self.seats_per_bench if limit is None else min(limit, self.seats_per_bench)
        for bench in range(self.benches):
            for position in range(per_bench):
                yield bench, position


def normalize(room) -> LayoutView:
    capacity = room.capacity
    benches = room.benches or 0
    seats_per_bench = room.seats_per_bench or 0

    if capacity is None or capacity < 1:
        raise InvalidRoomLayout(
            f"Room {room.room_no} must have a capacity of at least 1.",
            room_no=room.room_no, capacity=capacity,
        )
    if benches < 0 or seats_per_bench < 0:
        raise InvalidRoomLayout(
            f"Room {room.room_no} has a negative bench layout.",
            room_no=room.room_no, benches=benches, seats_per_bench=seats_per_bench,
        )

    return LayoutView(room=room, capacity=capacity, benches=benches, seats_per_bench=seats_per_bench)
