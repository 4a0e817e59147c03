"""
Invigilator Coverage Assigner

After a successful allocation, pairs free invigilators 1:1 with the rooms
that received students. Running out of invigilators is reported, never
raised, and never touches the seat assignments.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from django.db import transaction

from .models import Invigilator, InvigilatorAssignment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoverageReport:
    assigned_count: int
    vacant_rooms: List[str] = field(default_factory=list)
    covered_rooms: List[str] = field(default_factory=list)

    @property
    def vacant_room_count(self):
        return len(self.vacant_rooms)

    @property
    def shortfall(self):
        return bool(self.vacant_rooms)

    def as_dict(self):
        return {
            'assigned_count': self.assigned_count,
            'vacant_room_count': self.vacant_room_count,
            'vacant_rooms': list(self.vacant_rooms),
            'covered_rooms': list(self.covered_rooms),
        }


def assign_invigilators(rooms):
    """
    Give each uncovered room in ``rooms`` one free invigilator.

    Rooms that already have an invigilator keep them. Free invigilators are
    taken in name order, rooms in the order given.
    """
    rooms = list(rooms)
    with transaction.atomic():
        covered_ids = set(
            InvigilatorAssignment.objects.filter(room__in=rooms).values_list('room_id', flat=True)
        )
        uncovered = [room for room in rooms if room.pk not in covered_ids]

        free_invigilators = list(
            Invigilator.objects.select_for_update()
            .exclude(id__in=InvigilatorAssignment.objects.values('invigilator_id'))
            .order_by('name', 'id')[:len(uncovered)]
        )

        new_assignments = [
            InvigilatorAssignment(room=room, invigilator=invigilator)
            for room, invigilator in zip(uncovered, free_invigilators)
        ]
        if new_assignments:
            InvigilatorAssignment.objects.bulk_create(new_assignments)

    vacant = [room.room_no for room in uncovered[len(new_assignments):]]
    covered = [room.room_no for room in rooms if room.room_no not in vacant]

    if vacant:
        logger.warning("No invigilator available for %d room(s): %s", len(vacant), vacant)
    logger.info("Assigned %d invigilator(s) to %d room(s)", len(new_assignments), len(rooms))

    return CoverageReport(assigned_count=len(new_assignments), vacant_rooms=vacant, covered_rooms=covered)


def release_invigilators(rooms=None):
    """Clear invigilator assignments for ``rooms`` (every room when None)."""
    assignments = InvigilatorAssignment.objects.all()
    if rooms is not None:
        assignments = assignments.filter(room__in=list(rooms))
    deleted, _ = assignments.delete()
    logger.info("Released %d invigilator assignment(s)", deleted)
    return deleted
