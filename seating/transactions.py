"""
Allocation Transaction Controller

The only code that writes SeatAssignment rows. A plan replaces everything
stored for its scope in one transaction: either every placement is stored,
or the previous rows stay exactly as they were.
"""

import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction

from .exceptions import SeatOutOfRange, UniquenessViolation
from .models import AllocationRun, SeatAssignment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    ok: bool
    scope: str
    assigned_count: int
    replaced_count: int


def scope_for_exam(exam):
    return f"exam-{exam.pk}"


def lock_scope(scope, exam=None):
    """
    Take the row lock that serialises runs for ``scope``.

    Must be called inside ``transaction.atomic()``; the lock is held until
    the surrounding transaction ends.
    """
    run, _ = AllocationRun.objects.get_or_create(scope=scope, defaults={'exam': exam})
    return AllocationRun.objects.select_for_update().get(pk=run.pk)


def validate_plan(placements):
    """Reject a plan that reuses a seat, seats a student twice or overflows a room."""
    seats = {}
    students = {}
    for placement in placements:
        room = placement.room
        if not 1 <= placement.seat_number <= room.capacity:
            raise SeatOutOfRange(
                f"Seat {placement.seat_number} does not exist in room {room.room_no} "
                f"(capacity {room.capacity}).",
                room_no=room.room_no, seat_number=placement.seat_number, capacity=room.capacity,
            )

        seat_key = (room.room_no, placement.seat_number)
        if seat_key in seats:
            raise UniquenessViolation(
                f"Seat {placement.seat_number} in room {room.room_no} was given to both "
                f"{seats[seat_key]} and {placement.student.roll_no}.",
                room_no=room.room_no, seat_number=placement.seat_number,
                roll_nos=[seats[seat_key], placement.student.roll_no],
            )
        seats[seat_key] = placement.student.roll_no

        roll_no = placement.student.roll_no
        if roll_no in students:
            raise UniquenessViolation(
                f"Student {roll_no} was seated twice ({students[roll_no]} and "
                f"{room.room_no}/S{placement.seat_number}).",
                roll_no=roll_no,
            )
        students[roll_no] = f"{room.room_no}/S{placement.seat_number}"


def commit_plan(scope, placements, exam=None, pattern='', grouping_key='', subject_for=None):
    """
    Replace the stored seat assignments of ``scope`` with ``placements``.

    Args:
        scope: run key, e.g. ``scope_for_exam(exam)``
        placements: iterable of Placement tuples
        exam: optional Exam stored on each row
        subject_for: optional callable student -> Subject

    Returns:
        CommitResult

    Raises:
        UniquenessViolation / SeatOutOfRange: nothing is written
    """
    if not scope:
        raise ValueError("A scope key is required to commit a seating plan")

    placements = list(placements)
    validate_plan(placements)

    try:
        with transaction.atomic():
            run = lock_scope(scope, exam)

            # CRITICAL: Delete old allocations for this scope only
            replaced, _ = SeatAssignment.objects.filter(scope=scope).delete()

            SeatAssignment.objects.bulk_create([
                SeatAssignment(
                    scope=scope,
                    exam=exam,
                    subject=subject_for(placement.student) if subject_for else None,
                    student=placement.student,
                    room=placement.room,
                    seat_number=placement.seat_number,
                    group_key=placement.group_key,
                    pattern=pattern,
                )
                for placement in placements
            ])

            stored = SeatAssignment.objects.filter(scope=scope).count()
            if stored != len(placements):
                raise UniquenessViolation(
                    f"Stored {stored} seat assignments for {scope} but the plan had {len(placements)}.",
                    scope=scope, stored=stored, planned=len(placements),
                )

            run.exam = exam
            run.pattern = pattern
            run.grouping_key = grouping_key
            run.assigned_count = stored
            run.save()
    except IntegrityError as exc:
        logger.error("Seat commit for %s hit a constraint: %s", scope, exc)
        raise UniquenessViolation(
            f"Seat assignments for {scope} violate a uniqueness constraint: {exc}",
            scope=scope,
        ) from exc

    logger.info("Committed %d seat assignments for %s (replaced %d)", len(placements), scope, replaced)
    return CommitResult(ok=True, scope=scope, assigned_count=len(placements), replaced_count=replaced)


def release_scope(scope):
    """Delete every seat assignment stored for ``scope``; returns the number removed."""
    with transaction.atomic():
        run = lock_scope(scope)
        deleted, _ = SeatAssignment.objects.filter(scope=scope).delete()
        run.assigned_count = 0
        run.save(update_fields=['assigned_count', 'updated_at'])

    logger.info("Released %d seat assignments for %s", deleted, scope)
    return deleted
