"""
Capacity Planner

Checks that the selected rooms hold every student before anything is
written, and sizes the shortage when they do not.
"""

import logging
from dataclasses import asdict, dataclass
from math import ceil

from .conf import get_setting
from .exceptions import InsufficientCapacity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityPlan:
    sufficient: bool
    total_demand: int
    total_seats: int
    shortage: int
    rooms_needed: int
    representative_capacity: int

    def as_dict(self):
        return asdict(self)


def representative_capacity(rooms) -> int:
    """
    Capacity used to turn a seat shortage into a room count.

    A configured REPRESENTATIVE_ROOM_CAPACITY wins; otherwise the first room
    in allocation order stands for the rest, and DEFAULT_ROOM_CAPACITY covers
    an empty room list.
    """
    configured = get_setting('REPRESENTATIVE_ROOM_CAPACITY')
    if configured:
        return int(configured)
    if rooms:
        return rooms[0].capacity
    return int(get_setting('DEFAULT_ROOM_CAPACITY'))


def rooms_for(seats: int, rooms) -> int:
    if seats <= 0:
        return 0
    return ceil(seats / representative_capacity(rooms))


def plan_capacity(total_demand: int, rooms) -> CapacityPlan:
    rooms = list(rooms)
    total_seats = sum(room.capacity for room in rooms)
    shortage = max(0, total_demand - total_seats)
    per_room = representative_capacity(rooms)

    return CapacityPlan(
        sufficient=shortage == 0,
        total_demand=total_demand,
        total_seats=total_seats,
        shortage=shortage,
        rooms_needed=ceil(shortage / per_room) if shortage else 0,
        representative_capacity=per_room,
    )


def ensure_capacity(plan: CapacityPlan) -> CapacityPlan:
    if not plan.sufficient:
        logger.warning(
            "Insufficient capacity: %d students, %d seats (short by %d, about %d room(s))",
            plan.total_demand, plan.total_seats, plan.shortage, plan.rooms_needed,
        )
        raise InsufficientCapacity(plan)
    return plan
