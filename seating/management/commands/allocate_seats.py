from django.core.management.base import BaseCommand, CommandError

from seating.conf import get_setting
from seating.exceptions import AllocationError
from seating.forms import AllocationRunForm
from seating.models import Exam, Room
from seating.services import allocate_seats
from seating.transactions import release_scope, scope_for_exam


class Command(BaseCommand):
    help = 'Allocate seats for an exam (or all exams if --all, or a named --scope).'

    def add_arguments(self, parser):
        parser.add_argument('--exam_id', type=int, help='ID of the exam to allocate seats for')
        parser.add_argument('--all', action='store_true', help='Allocate seats for all exams')
        parser.add_argument('--scope', help='Run key for an allocation not tied to an exam')
        parser.add_argument('--pattern', help='pattern1, pattern2, criss-cross, criss-cross-2, criss-cross-3 or linear')
        parser.add_argument('--group-by', dest='grouping_key',
                            help='department, academic_year, subject or department_subject')
        parser.add_argument('--students-per-bench', dest='students_per_bench', type=int, choices=[2, 3])
        parser.add_argument('--rooms', help='Comma-separated room numbers to use; rooms are filled in room-number order')
        parser.add_argument('--clear', action='store_true', help='Delete the stored allocations instead of allocating')

    def handle(self, *args, **options):
        exam_id = options.get('exam_id')
        do_all = options.get('all')
        scope = options.get('scope')

        if not exam_id and not do_all and not scope:
            raise CommandError('Provide --exam_id, --all or --scope')
        if scope and (exam_id or do_all):
            raise CommandError('--scope cannot be combined with --exam_id or --all; exams use their own scope')

        if do_all:
            targets = [(exam, None) for exam in Exam.objects.order_by('date', 'id')]
        elif exam_id:
            exam = Exam.objects.filter(id=exam_id).first()
            if exam is None:
                raise CommandError(f'Exam {exam_id} does not exist')
            targets = [(exam, None)]
        else:
            targets = [(None, scope)]

        if options.get('clear'):
            for exam, run_scope in targets:
                run_scope = run_scope or scope_for_exam(exam)
                deleted = release_scope(run_scope)
                self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} seat allocation(s) for {run_scope}"))
            return

        room_ids = self._room_ids(options.get('rooms'))
        failures = 0

        for exam, run_scope in targets:
            label = f"exam {exam.id} - {exam.exam_name}" if exam else f"scope {run_scope}"
            self.stdout.write(f"Allocating seats for {label}")

            form = AllocationRunForm(data={
                'exam': exam.pk if exam else '',
                'scope': run_scope or '',
                'grouping_key': options.get('grouping_key') or get_setting('DEFAULT_GROUPING_KEY'),
                'pattern': options.get('pattern') or get_setting('DEFAULT_PATTERN'),
                'students_per_bench': options.get('students_per_bench') or '',
                'rooms': room_ids,
            })
            if not form.is_valid():
                failures += 1
                self.stdout.write(self.style.ERROR(form.errors.as_text()))
                continue

            try:
                result = allocate_seats(form.to_parameters())
            except AllocationError as exc:
                failures += 1
                self.stdout.write(self.style.ERROR(exc.message))
                continue

            self.stdout.write(self.style.SUCCESS(result.message))

        if failures:
            raise CommandError(f'{failures} allocation run(s) failed; earlier allocations were left unchanged')

    def _room_ids(self, rooms_option):
        if not rooms_option:
            return []
        room_numbers = [name.strip() for name in rooms_option.split(',') if name.strip()]
        rooms = dict(Room.objects.filter(room_no__in=room_numbers).values_list('room_no', 'id'))
        unknown = [name for name in room_numbers if name not in rooms]
        if unknown:
            raise CommandError(f"Unknown room(s): {', '.join(unknown)}")
        return [rooms[name] for name in room_numbers]
