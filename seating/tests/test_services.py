from datetime import date, time

from django.test import TestCase, override_settings

from seating.exceptions import (
    AllocationIncomplete,
    InsufficientCapacity,
    InvalidMapping,
    PolicyMismatch,
    UniquenessViolation,
)
from seating.models import (
    Department,
    DepartmentSubject,
    Exam,
    Invigilator,
    InvigilatorAssignment,
    Room,
    SeatAssignment,
    Student,
    Subject,
)
from seating.services import RunParameters, allocate_seats
from seating.transactions import commit_plan


def stored(scope):
    return list(
        SeatAssignment.objects.filter(scope=scope)
        .order_by('room__room_no', 'seat_number')
        .values_list('student__roll_no', 'room__room_no', 'seat_number')
    )


class AllocationServiceTests(TestCase):
    def setUp(self):
        self.cs = Department.objects.create(name='CS')
        self.ee = Department.objects.create(name='EE')
        for n in range(1, 6):
            Student.objects.create(roll_no=f"CS{n:02d}", name=f"CS student {n}", department=self.cs)
            Student.objects.create(roll_no=f"EE{n:02d}", name=f"EE student {n}", department=self.ee)
        self.r1 = Room.objects.create(room_no='R1', capacity=6, benches=3, seats_per_bench=2)
        self.r2 = Room.objects.create(room_no='R2', capacity=6, benches=3, seats_per_bench=2)
        Invigilator.objects.create(employee_id='T1', name='Asha')
        Invigilator.objects.create(employee_id='T2', name='Bo')

    def test_ten_students_fill_two_rooms(self):
        result = allocate_seats(RunParameters(scope='mid-term', pattern='pattern2'))

        self.assertEqual(result.assigned_count, 10)
        self.assertEqual(result.rooms_used, ['R1', 'R2'])
        self.assertEqual(SeatAssignment.objects.filter(scope='mid-term').count(), 10)
        for room in (self.r1, self.r2):
            seats = SeatAssignment.objects.filter(scope='mid-term', room=room)
            self.assertTrue(seats.exists())
            self.assertTrue(all(1 <= seat.seat_number <= room.capacity for seat in seats))
        self.assertEqual(dict(result.group_sizes), {'CS': 5, 'EE': 5})
        self.assertIn('Successfully allocated 10 students across 2 room(s)', result.message)

    def test_identical_reruns_store_identical_seats(self):
        allocate_seats(RunParameters(scope='mid-term', pattern='pattern1'))
        first = stored('mid-term')
        result = allocate_seats(RunParameters(scope='mid-term', pattern='pattern1'))
        self.assertEqual(stored('mid-term'), first)
        self.assertEqual(result.replaced_count, 10)

    def test_shortage_is_reported_before_writing(self):
        small = Room.objects.create(room_no='S1', capacity=4, benches=2, seats_per_bench=2)
        with self.assertRaises(InsufficientCapacity) as ctx:
            allocate_seats(RunParameters(scope='mid-term', room_ids=[small.pk]))
        self.assertEqual(ctx.exception.details['shortage'], 6)
        self.assertEqual(ctx.exception.details['total_seats'], 4)
        self.assertFalse(SeatAssignment.objects.exists())

    def test_failed_rerun_keeps_previous_assignments(self):
        allocate_seats(RunParameters(scope='mid-term'))
        before = stored('mid-term')

        Student.objects.create(roll_no='CS99', name='Late joiner', department=self.cs)
        Student.objects.create(roll_no='CS98', name='Late joiner', department=self.cs)
        Student.objects.create(roll_no='CS97', name='Late joiner', department=self.cs)
        with self.assertRaises(InsufficientCapacity):
            allocate_seats(RunParameters(scope='mid-term'))
        self.assertEqual(stored('mid-term'), before)

        # three departments cannot share two-group benches
        Student.objects.filter(roll_no__in=['CS97', 'CS98', 'CS99']).delete()
        me = Department.objects.create(name='ME')
        Student.objects.create(roll_no='ME01', name='ME student', department=me)
        with self.assertRaises(PolicyMismatch):
            allocate_seats(RunParameters(scope='mid-term', pattern='criss-cross-2'))
        self.assertEqual(stored('mid-term'), before)

    def test_allocator_failure_keeps_previous_assignments(self):
        allocate_seats(RunParameters(scope='mid-term'))
        Student.objects.create(roll_no='CS06', name='CS student 6', department=self.cs)
        Student.objects.create(roll_no='CS07', name='CS student 7', department=self.cs)
        Student.objects.filter(roll_no__in=['EE04', 'EE05']).delete()
        before = stored('mid-term')

        # 7 + 3 fits the 12 seats, but two-group benches run out of EE partners
        with self.assertRaises(AllocationIncomplete) as ctx:
            allocate_seats(RunParameters(scope='mid-term', pattern='criss-cross-2'))
        self.assertEqual(ctx.exception.details['allocated'], 9)
        self.assertEqual(ctx.exception.details['sample_unallocated'], ['CS07'])
        self.assertEqual(stored('mid-term'), before)

    def test_runs_for_other_scopes_are_untouched(self):
        allocate_seats(RunParameters(scope='mid-term'))
        allocate_seats(RunParameters(scope='finals', room_ids=[self.r2.pk, self.r1.pk]))
        self.assertEqual(len(stored('mid-term')), 10)
        self.assertEqual(len(stored('finals')), 10)

    def test_invigilator_shortfall_is_reported(self):
        Invigilator.objects.filter(employee_id='T2').delete()
        result = allocate_seats(RunParameters(scope='mid-term'))
        self.assertEqual(result.assigned_count, 10)
        self.assertEqual(result.coverage.vacant_rooms, ['R2'])
        self.assertIn('No invigilator for: R2', result.message)
        self.assertEqual(InvigilatorAssignment.objects.get(room=self.r1).invigilator.name, 'Asha')

    @override_settings(SEAT_ALLOCATION={'ASSIGN_INVIGILATORS': False})
    def test_coverage_can_be_switched_off(self):
        result = allocate_seats(RunParameters(scope='mid-term'))
        self.assertIsNone(result.coverage)
        self.assertFalse(InvigilatorAssignment.objects.exists())

    def test_students_without_department_are_excluded(self):
        Student.objects.create(roll_no='ZZ01', name='No department')
        result = allocate_seats(RunParameters(scope='mid-term'))
        self.assertEqual(result.excluded, ['ZZ01'])
        self.assertFalse(SeatAssignment.objects.filter(student__roll_no='ZZ01').exists())
        self.assertIn('1 student(s) had no department', result.message)

    def test_bench_pattern_skips_flat_rooms(self):
        Room.objects.create(room_no='F1', capacity=50)
        result = allocate_seats(RunParameters(scope='mid-term', pattern='criss-cross', students_per_bench=2))
        self.assertEqual(result.skipped_rooms, ['F1'])
        self.assertEqual(result.assigned_count, 10)

    def test_empty_roster_clears_the_scope(self):
        allocate_seats(RunParameters(scope='mid-term'))
        Student.objects.all().delete()
        result = allocate_seats(RunParameters(scope='mid-term'))
        self.assertEqual(result.assigned_count, 0)
        self.assertEqual(stored('mid-term'), [])

    def test_scope_or_exam_is_required(self):
        with self.assertRaises(ValueError):
            allocate_seats(RunParameters())


class ExamAllocationTests(TestCase):
    def setUp(self):
        self.cs = Department.objects.create(name='CS')
        self.me = Department.objects.create(name='ME')
        self.ee = Department.objects.create(name='EE')
        for dept in (self.cs, self.me, self.ee):
            for n in range(1, 3):
                Student.objects.create(roll_no=f"{dept.name}{n:02d}", name=f"{dept.name} {n}", department=dept)

        self.room = Room.objects.create(room_no='H1', capacity=6, benches=2, seats_per_bench=3)
        self.exam = Exam.objects.create(exam_name='Semester End', date=date(2025, 5, 2))
        self.exam.rooms.add(self.room)

    def map_subject(self, department, code, start, end):
        subject = Subject.objects.create(
            exam=self.exam, code=code, name=code,
            exam_date=date(2025, 5, 2), start_time=start, end_time=end,
        )
        DepartmentSubject.objects.create(exam=self.exam, department=department, subject=subject)
        return subject

    def test_exam_departments_limit_the_roster(self):
        self.exam.departments.add(self.cs, self.me)
        result = allocate_seats(RunParameters(exam=self.exam))
        self.assertEqual(result.scope, f"exam-{self.exam.pk}")
        self.assertEqual(result.assigned_count, 4)
        self.assertFalse(SeatAssignment.objects.filter(student__department=self.ee).exists())

    def test_subject_grouping_with_three_group_criss_cross(self):
        self.map_subject(self.cs, 'CS301', time(9), time(12))
        self.map_subject(self.me, 'ME301', time(9), time(12))
        self.map_subject(self.ee, 'EE301', time(9), time(12))

        result = allocate_seats(RunParameters(
            exam=self.exam, grouping_key='subject', pattern='criss-cross', students_per_bench=3,
        ))
        self.assertEqual(result.pattern, 'criss-cross-3')
        rows = list(
            SeatAssignment.objects.filter(scope=result.scope)
            .order_by('seat_number')
            .values_list('seat_number', 'group_key', 'subject__code')
        )
        self.assertEqual([row[1] for row in rows], ['CS301', 'EE301', 'ME301'] * 2)
        self.assertTrue(all(row[1] == row[2] for row in rows))

    def test_overlapping_subjects_stop_the_run(self):
        self.map_subject(self.cs, 'CS301', time(9), time(12))
        self.map_subject(self.cs, 'CS302', time(11), time(13))
        self.map_subject(self.me, 'ME301', time(9), time(12))

        with self.assertRaises(InvalidMapping) as ctx:
            allocate_seats(RunParameters(exam=self.exam, grouping_key='subject'))
        self.assertEqual(ctx.exception.details['conflicts'][0]['department'], 'CS')
        self.assertFalse(SeatAssignment.objects.exists())

    def test_subject_grouping_needs_mappings(self):
        with self.assertRaises(InvalidMapping):
            allocate_seats(RunParameters(exam=self.exam, grouping_key='department_subject'))

    def test_exam_cannot_be_seated_under_a_second_scope(self):
        result = allocate_seats(RunParameters(exam=self.exam))
        before = stored(result.scope)

        with self.assertRaises(ValueError):
            allocate_seats(RunParameters(exam=self.exam, scope='custom'))
        with self.assertRaises(UniquenessViolation):
            commit_plan('custom', result.placements, exam=self.exam)

        self.assertEqual(SeatAssignment.objects.filter(exam=self.exam).count(), 6)
        self.assertEqual(stored(result.scope), before)
        self.assertEqual(stored('custom'), [])

    def test_matching_scope_key_is_accepted(self):
        result = allocate_seats(RunParameters(exam=self.exam, scope=f"exam-{self.exam.pk}"))
        self.assertEqual(result.assigned_count, 6)
