from unittest import mock

from django.test import TestCase

from seating.exceptions import SeatOutOfRange, UniquenessViolation
from seating.models import AllocationRun, Department, Room, SeatAssignment, Student
from seating.policies import Placement
from seating.transactions import commit_plan, release_scope, validate_plan


def stored(scope):
    return list(
        SeatAssignment.objects.filter(scope=scope)
        .order_by('room__room_no', 'seat_number')
        .values_list('student__roll_no', 'room__room_no', 'seat_number')
    )


class CommitPlanTests(TestCase):
    def setUp(self):
        cs = Department.objects.create(name='CS')
        self.room = Room.objects.create(room_no='R1', capacity=3)
        self.other_room = Room.objects.create(room_no='R2', capacity=3)
        self.students = [
            Student.objects.create(roll_no=f"CS{n:02d}", name=f"Student {n}", department=cs)
            for n in range(1, 4)
        ]

    def placements(self, room=None):
        room = room or self.room
        return [Placement(student, room, n, 'CS') for n, student in enumerate(self.students, start=1)]

    def test_commit_stores_every_placement(self):
        result = commit_plan('term-1', self.placements(), pattern='pattern2', grouping_key='department')
        self.assertTrue(result.ok)
        self.assertEqual(result.assigned_count, 3)
        self.assertEqual(result.replaced_count, 0)
        self.assertEqual(stored('term-1'), [('CS01', 'R1', 1), ('CS02', 'R1', 2), ('CS03', 'R1', 3)])

        run = AllocationRun.objects.get(scope='term-1')
        self.assertEqual(run.assigned_count, 3)
        self.assertEqual(run.pattern, 'pattern2')

    def test_commit_replaces_the_scope(self):
        commit_plan('term-1', self.placements())
        result = commit_plan('term-1', self.placements(self.other_room))
        self.assertEqual(result.replaced_count, 3)
        self.assertEqual({row[1] for row in stored('term-1')}, {'R2'})

    def test_scopes_are_isolated(self):
        commit_plan('term-1', self.placements())
        commit_plan('term-2', self.placements())
        release_scope('term-2')
        self.assertEqual(len(stored('term-1')), 3)
        self.assertEqual(stored('term-2'), [])

    def test_duplicate_seat_leaves_previous_rows(self):
        commit_plan('term-1', self.placements())
        bad = [
            Placement(self.students[0], self.other_room, 1, 'CS'),
            Placement(self.students[1], self.other_room, 1, 'CS'),
        ]
        with self.assertRaises(UniquenessViolation):
            commit_plan('term-1', bad)
        self.assertEqual(stored('term-1'), [('CS01', 'R1', 1), ('CS02', 'R1', 2), ('CS03', 'R1', 3)])

    def test_student_seated_twice_is_rejected(self):
        with self.assertRaises(UniquenessViolation) as ctx:
            validate_plan([
                Placement(self.students[0], self.room, 1, 'CS'),
                Placement(self.students[0], self.room, 2, 'CS'),
            ])
        self.assertEqual(ctx.exception.details['roll_no'], 'CS01')

    def test_seat_beyond_capacity_is_rejected(self):
        with self.assertRaises(SeatOutOfRange):
            commit_plan('term-1', [Placement(self.students[0], self.room, 4, 'CS')])
        self.assertFalse(SeatAssignment.objects.exists())

    def test_scope_is_required(self):
        with self.assertRaises(ValueError):
            commit_plan('', self.placements())

    def test_release_scope_reports_deleted_rows(self):
        commit_plan('term-1', self.placements())
        self.assertEqual(release_scope('term-1'), 3)
        self.assertEqual(AllocationRun.objects.get(scope='term-1').assigned_count, 0)

    def test_database_constraint_rolls_back_the_commit(self):
        commit_plan('term-1', self.placements())
        clash = [
            Placement(self.students[0], self.other_room, 1, 'CS'),
            Placement(self.students[1], self.other_room, 1, 'CS'),
        ]
        # let the duplicate seat reach the unique constraint
        with mock.patch('seating.transactions.validate_plan'):
            with self.assertRaises(UniquenessViolation) as ctx:
                commit_plan('term-1', clash)
        self.assertEqual(ctx.exception.details['scope'], 'term-1')
        self.assertEqual(stored('term-1'), [('CS01', 'R1', 1), ('CS02', 'R1', 2), ('CS03', 'R1', 3)])
        self.assertEqual(AllocationRun.objects.get(scope='term-1').assigned_count, 3)
