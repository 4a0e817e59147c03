"""
Failures raised by the seat allocation engine.

Every error carries structured ``details`` so a caller can tell the user how
many seats or rooms are missing instead of showing a bare message.
"""


class AllocationError(Exception):
    """Base class for every fatal allocation failure."""

    code = 'allocation_error'

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self):
        return {'error': self.code, 'message': self.message, **self.details}


class InvalidMapping(AllocationError):
    """A department maps to no subject or to subjects whose windows overlap."""

    code = 'invalid_mapping'


class InvalidRoomLayout(AllocationError):
    code = 'invalid_room_layout'


class UnknownPattern(AllocationError):
    code = 'unknown_pattern'


class PolicyMismatch(AllocationError):
    """The chosen pattern cannot seat the groups it was given."""

    code = 'policy_mismatch'


class InsufficientCapacity(AllocationError):
    code = 'insufficient_capacity'

    def __init__(self, plan):
        super().__init__(
            f"Not enough seats available. Students: {plan.total_demand}, Capacity: {plan.total_seats}. "
            f"Need {plan.shortage} more seats (about {plan.rooms_needed} more room(s)).",
            **plan.as_dict()
        )
        self.plan = plan


class AllocationIncomplete(AllocationError):
    code = 'allocation_incomplete'

    def __init__(self, allocated, unallocated, sample_unallocated, rooms_needed):
        super().__init__(
            f"Placed {allocated} students but {unallocated} could not be seated. "
            f"About {rooms_needed} more room(s) are needed.",
            allocated=allocated,
            unallocated=unallocated,
            sample_unallocated=list(sample_unallocated),
            rooms_needed=rooms_needed,
        )


class UniquenessViolation(AllocationError):
    """A plan reused a seat or seated a student twice within one scope."""

    code = 'uniqueness_violation'


class SeatOutOfRange(AllocationError):
    code = 'seat_out_of_range'
