"""
Read-only views over committed allocations: the per-room allotment report,
a student's exam schedule and the seat grid of one room.
"""

from datetime import date, time

from django.db.models import Count

from .layout import normalize
from .models import Room, SeatAssignment
from .policies import ColumnInterleaved


def _invigilator_of(room):
    assignment = getattr(room, 'invigilator_assignment', None)
    return assignment.invigilator if assignment is not None else None


def allotment_report(scope):
    rooms = (
        Room.objects.filter(seat_assignments__scope=scope)
        .annotate(allocated_count=Count('seat_assignments'))
        .select_related('invigilator_assignment__invigilator')
        .order_by('room_no')
    )

    rows = []
    vacant_rooms = []
    for room in rooms:
        invigilator = _invigilator_of(room)
        if invigilator is None:
            vacant_rooms.append(room.room_no)
        rows.append({
            'room_no': room.room_no,
            'floor': room.floor,
            'capacity': room.capacity,
            'allocated_count': room.allocated_count,
            'occupancy_percentage': min(room.allocated_count / room.capacity * 100, 100),
            'invigilator': invigilator.name if invigilator else None,
            'invigilator_id': invigilator.employee_id if invigilator else None,
        })

    return {
        'scope': scope,
        'total_allocations': sum(row['allocated_count'] for row in rows),
        'rooms': rows,
        'vacant_rooms': vacant_rooms,
    }


def student_schedule(student):
    """Every seat the student holds, earliest exam first."""
    assignments = (
        SeatAssignment.objects.filter(student=student)
        .select_related('room', 'exam', 'subject')
    )

    schedule = []
    for assignment in assignments:
        subject, exam = assignment.subject, assignment.exam
        # the subject's own slot wins over the exam's
        if subject is not None and subject.exam_date is not None:
            exam_date, start_time = subject.exam_date, subject.start_time
        elif exam is not None:
            exam_date, start_time = exam.date, exam.start_time
        else:
            exam_date, start_time = None, None

        schedule.append({
            'scope': assignment.scope,
            'exam_name': exam.exam_name if exam else None,
            'subject_code': subject.code if subject else None,
            'exam_date': exam_date,
            'start_time': start_time,
            'room_no': assignment.room.room_no,
            'seat_number': assignment.seat_number,
        })

    schedule.sort(key=lambda row: (row['exam_date'] or date.max, row['start_time'] or time.min, row['scope']))
    return schedule


def seating_chart(scope, room):
    """
    Seat grid of ``room`` for ``scope``: one list per bench, one cell per seat.

    Flat rooms come back as a single row. Seats numbered past the grid are
    listed under ``overflow``.
    """
    layout = normalize(room)
    allocations = {
        assignment.seat_number: assignment
        for assignment in SeatAssignment.objects.filter(scope=scope, room=room).select_related('student')
    }
    patterns = {assignment.pattern for assignment in allocations.values()}
    column_major = ColumnInterleaved.name in patterns

    def cell(seat_number):
        assignment = allocations.get(seat_number)
        if assignment is None:
            return {'type': 'empty', 'seat_number': seat_number}
        return {
            'type': 'occupied',
            'seat_number': seat_number,
            'roll_no': assignment.student.roll_no,
            'student_name': assignment.student.name,
            'group_key': assignment.group_key,
        }

    if not layout.addressable:
        return {
            'room_no': room.room_no,
            'scope': scope,
            'rows': [[cell(n) for n in range(1, layout.capacity + 1)]],
            'overflow': [],
        }

    rows = [[None] * layout.seats_per_bench for _ in range(layout.benches)]
    for seat_number in range(1, layout.grid_seats + 1):
        bench, column = layout.position_of(seat_number, column_major=column_major)
        rows[bench][column] = cell(seat_number)

    return {
        'room_no': room.room_no,
        'scope': scope,
        'rows': rows,
        'overflow': [cell(n) for n in range(layout.grid_seats + 1, layout.capacity + 1)],
    }
