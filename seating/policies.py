"""
Seating policies.

Every policy turns ordered groups and normalised room layouts into a list of
placements ``(student, room, seat_number, group_key)``. Policies never emit a
seat above a room's capacity and never reuse a (room, seat) pair; students
left over once the rooms run out raise AllocationIncomplete.

Group rotation is expressed with an explicit cursor per group
(RotationState) and two pure functions, ``next_group`` and ``take``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, NamedTuple, Optional, Tuple

from .capacity import rooms_for
from .conf import get_setting
from .exceptions import AllocationIncomplete, PolicyMismatch, UnknownPattern

logger = logging.getLogger(__name__)


class Placement(NamedTuple):
    student: Any
    room: Any
    seat_number: int
    group_key: str


@dataclass
class SeatPlan:
    pattern: str
    placements: List[Placement] = field(default_factory=list)
    # columns that had to repeat the neighbouring group (pattern1 only)
    adjacency_conflicts: List[dict] = field(default_factory=list)

    @property
    def rooms_used(self):
        seen = {}
        for placement in self.placements:
            seen.setdefault(placement.room.room_no, placement.room)
        return list(seen.values())

    @property
    def degraded(self):
        return bool(self.adjacency_conflicts)


# --- Group rotation ---

class RotationState(NamedTuple):
    keys: Tuple[str, ...]
    sizes: Tuple[int, ...]
    positions: Tuple[int, ...]
    turn: int = 0

    @classmethod
    def start(cls, groups):
        keys = tuple(groups)
        return cls(
            keys=keys,
            sizes=tuple(len(groups[key]) for key in keys),
            positions=(0,) * len(keys),
        )

    def remaining(self, key):
        index = self.keys.index(key)
        return self.sizes[index] - self.positions[index]

    @property
    def total_remaining(self):
        return sum(self.sizes) - sum(self.positions)


def next_group(state, exclude=frozenset()):
    """
    Pick the next group with remaining students in round-robin order,
    skipping keys in ``exclude``.

    Returns:
        (key, new_state), or (None, state) when no group qualifies
    """
    count = len(state.keys)
    for offset in range(count):
        index = (state.turn + offset) % count
        key = state.keys[index]
        if state.positions[index] < state.sizes[index] and key not in exclude:
            return key, state._replace(turn=(index + 1) % count)
    return None, state


def take(state, key):
    """Consume the next student of ``key``; returns (member_index, new_state)."""
    index = state.keys.index(key)
    position = state.positions[index]
    if position >= state.sizes[index]:
        raise ValueError(f"Group {key} has no students left")
    positions = state.positions[:index] + (position + 1,) + state.positions[index + 1:]
    return position, state._replace(positions=positions)


# --- Policies ---

class SeatingPolicy:
    name = None
    requires_grid = True

    def __init__(self, students_per_bench=None):
        self.students_per_bench = students_per_bench

    def accepts(self, layout):
        return layout.addressable or not self.requires_grid

    def validate_groups(self, groups):
        pass

    def place(self, groups, layouts):
        """
        Seat every member of ``groups`` into ``layouts`` (in order).

        Raises:
            PolicyMismatch: the groups do not fit this pattern
            AllocationIncomplete: rooms ran out before every student was seated
        """
        self.validate_groups(groups)
        layouts = [layout for layout in layouts if self.accepts(layout)]
        plan = SeatPlan(pattern=self.name)
        state = RotationState.start(groups)

        state = self.fill(groups, layouts, state, plan)

        if state.total_remaining:
            self._raise_incomplete(groups, state, plan, layouts)
        logger.info(
            "%s placed %d students in %d room(s)",
            self.name, len(plan.placements), len(plan.rooms_used),
        )
        return plan

    def fill(self, groups, layouts, state, plan):
        raise NotImplementedError

    def seat(self, groups, state, plan, key, layout, seat_number):
        index, state = take(state, key)
        plan.placements.append(Placement(groups[key][index], layout.room, seat_number, key))
        return state

    def _raise_incomplete(self, groups, state, plan, layouts):
        leftovers = []
        for key, size, position in zip(state.keys, state.sizes, state.positions):
            leftovers.extend(groups[key][position:size])
        sample_size = get_setting('UNALLOCATED_SAMPLE_SIZE')
        logger.error(
            "%s left %d of %d students unseated",
            self.name, len(leftovers), len(leftovers) + len(plan.placements),
        )
        raise AllocationIncomplete(
            allocated=len(plan.placements),
            unallocated=len(leftovers),
            sample_unallocated=[student.roll_no for student in leftovers[:sample_size]],
            rooms_needed=rooms_for(len(leftovers), layouts),
        )


class ColumnInterleaved(SeatingPolicy):
    """
    Pattern 1: fill each room column by column (column-major seat numbers),
    giving every column a group different from the column before it.

    A group that runs out mid-column is topped up from the next group, and
    every group used in a column is excluded from the following one. With
    only two groups this can leave a column with no eligible group; it is
    then filled from any group and recorded in ``adjacency_conflicts``.
    """

    name = 'pattern1'

    def fill(self, groups, layouts, state, plan):
        for layout in layouts:
            if not state.total_remaining:
                break
            previous_keys = frozenset()

            for column in range(layout.seats_per_bench):
                seats = [layout.column_major_seat(bench, column) for bench in range(layout.benches)]
                seats = [seat_number for seat_number in seats if seat_number is not None]
                if not seats or not state.total_remaining:
                    break

                column_keys = []
                key = None
                for seat_number in seats:
                    if key is None or not state.remaining(key):
                        key, state = next_group(state, exclude=previous_keys)
                        if key is None:
                            key, state = next_group(state)
                            if key is None:
                                break
                            plan.adjacency_conflicts.append({
                                'room_no': layout.room_no,
                                'column': column + 1,
                                'group_key': key,
                            })
                            logger.warning(
                                "Room %s column %d repeats group %s next to itself",
                                layout.room_no, column + 1, key,
                            )
                        column_keys.append(key)
                    state = self.seat(groups, state, plan, key, layout, seat_number)

                previous_keys = frozenset(column_keys)
        return state


class RoundRobinInterleaved(SeatingPolicy):
    """Pattern 2: draw one student per group in turn, then fill seats 1..capacity room by room."""

    name = 'pattern2'
    requires_grid = False

    def fill(self, groups, layouts, state, plan):
        draw_order = []
        cursor = state
        while True:
            key, cursor = next_group(cursor)
            if key is None:
                break
            _, cursor = take(cursor, key)
            draw_order.append(key)

        draws = iter(draw_order)
        for layout in layouts:
            for seat_number in range(1, layout.capacity + 1):
                key = next(draws, None)
                if key is None:
                    return state
                state = self.seat(groups, state, plan, key, layout, seat_number)
        return state


class BenchPolicy(SeatingPolicy):
    """Bench-local patterns: each bench seats ``students_per_bench`` students, numbered row-major."""

    default_per_bench = None

    def __init__(self, students_per_bench=None):
        super().__init__(students_per_bench or self.default_per_bench)

    def accepts(self, layout):
        if not layout.addressable:
            return False
        return self.students_per_bench is None or layout.seats_per_bench >= self.students_per_bench

    def slot_key(self, state, bench, position):
        raise NotImplementedError

    def fill(self, groups, layouts, state, plan):
        for layout in layouts:
            for bench, position in layout.bench_positions(self.students_per_bench):
                if not state.total_remaining:
                    return state
                seat_number = layout.row_major_seat(bench, position)
                if seat_number is None:
                    break
                key = self.slot_key(state, bench, position)
                if key is None or not state.remaining(key):
                    # the slot's group is used up; the seat stays empty
                    continue
                state = self.seat(groups, state, plan, key, layout, seat_number)
        return state


class BenchCrissCross2(BenchPolicy):
    """
    Two groups alternating per bench: even benches [A, B], odd benches [B, A].
    With three seats per bench this becomes [A, B, A] / [B, A, B].
    """

    name = 'criss-cross-2'
    default_per_bench = 2

    def __init__(self, students_per_bench=None):
        if students_per_bench not in (None, 2, 3):
            raise PolicyMismatch(
                "Criss-cross for two groups seats 2 or 3 students per bench.",
                students_per_bench=students_per_bench,
            )
        super().__init__(students_per_bench)

    def validate_groups(self, groups):
        if len(groups) != 2:
            raise PolicyMismatch(
                f"Criss-cross for two groups needs exactly 2 groups, found {len(groups)}.",
                groups=list(groups),
            )

    def slot_key(self, state, bench, position):
        return state.keys[(bench + position) % 2]


class BenchCrissCross3(BenchPolicy):
    """Three groups, the same [A, B, C] order on every bench."""

    name = 'criss-cross-3'
    default_per_bench = 3

    def __init__(self, students_per_bench=None):
        if students_per_bench not in (None, 3):
            raise PolicyMismatch(
                "Criss-cross for three groups seats 3 students per bench.",
                students_per_bench=students_per_bench,
            )
        super().__init__(students_per_bench)

    def validate_groups(self, groups):
        if len(groups) != 3:
            raise PolicyMismatch(
                f"Criss-cross for three groups needs exactly 3 groups, found {len(groups)}.",
                groups=list(groups),
            )

    def slot_key(self, state, bench, position):
        return state.keys[position % 3]


class BenchLinear(BenchPolicy):
    """Fill benches in order, finishing one group before starting the next."""

    name = 'linear'

    def slot_key(self, state, bench, position):
        for key in state.keys:
            if state.remaining(key):
                return key
        return None


PATTERNS = {
    ColumnInterleaved.name: ColumnInterleaved,
    RoundRobinInterleaved.name: RoundRobinInterleaved,
    BenchCrissCross2.name: BenchCrissCross2,
    BenchCrissCross3.name: BenchCrissCross3,
    BenchLinear.name: BenchLinear,
}

CRISS_CROSS = 'criss-cross'

PATTERN_CHOICES = (
    ('pattern1', 'Column interleaved by group'),
    ('pattern2', 'Round-robin interleaved by group'),
    (CRISS_CROSS, 'Criss-cross (chosen by students per bench)'),
    ('criss-cross-2', 'Criss-cross, two groups'),
    ('criss-cross-3', 'Criss-cross, three groups'),
    ('linear', 'Linear bench fill'),
)

BENCH_PATTERNS = (CRISS_CROSS, BenchCrissCross2.name, BenchCrissCross3.name, BenchLinear.name)


def get_policy(pattern, students_per_bench: Optional[int] = None) -> SeatingPolicy:
    if pattern == CRISS_CROSS:
        pattern = BenchCrissCross3.name if students_per_bench == 3 else BenchCrissCross2.name
    policy_class = PATTERNS.get(pattern)
    if policy_class is None:
        raise UnknownPattern(
            f"Unknown seating pattern '{pattern}'.",
            pattern=pattern, available=sorted(PATTERNS) + [CRISS_CROSS],
        )
    return policy_class(students_per_bench=students_per_bench)
