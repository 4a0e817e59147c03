from collections import OrderedDict

from seating.layout import normalize
from seating.models import Department, Room, Student


def make_group(prefix, count, department=None):
    """Unsaved students ``{prefix}01..`` for tests that never touch the database."""
    department = department or Department(name=prefix)
    return [
        Student(roll_no=f"{prefix}{n:02d}", name=f"Student {prefix}{n:02d}", department=department)
        for n in range(1, count + 1)
    ]


def make_groups(**sizes):
    return OrderedDict((key, make_group(key, size)) for key, size in sizes.items())


def make_layout(room_no='R1', capacity=None, benches=0, seats_per_bench=0):
    if capacity is None:
        capacity = benches * seats_per_bench
    return normalize(Room(room_no=room_no, capacity=capacity, benches=benches, seats_per_bench=seats_per_bench))


def triples(placements):
    return [(p.student.roll_no, p.room.room_no, p.seat_number) for p in placements]
