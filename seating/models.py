from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q, UniqueConstraint


# --- 1. Department Model (Must be defined before models that reference it) ---

class Department(models.Model):
    name = models.CharField(max_length=100, unique=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


# --- 2. Room Model ---

class Room(models.Model):
    room_no = models.CharField(max_length=50, unique=True)
    capacity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    # 0 benches or 0 seats per bench means the room only has a flat capacity
    benches = models.PositiveIntegerField(default=0, help_text="Number of benches (rows) in the room.")
    seats_per_bench = models.PositiveIntegerField(default=0, help_text="Seats on each bench.")
    floor = models.CharField(max_length=20, blank=True)

    class Meta:
        ordering = ['room_no']

    @property
    def has_grid(self):
        return self.benches > 0 and self.seats_per_bench > 0

    def __str__(self):
        if self.has_grid:
            return f"Room: {self.room_no} ({self.benches}B x {self.seats_per_bench}S - {self.capacity} seats)"
        return f"Room: {self.room_no} ({self.capacity} seats)"


# --- 3. People ---

class Student(models.Model):
    roll_no = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    department = models.ForeignKey(Department, on_delete=models.SET_NULL, null=True, blank=True, related_name='students')
    academic_year = models.CharField(max_length=20, blank=True)

    class Meta:
        ordering = ['roll_no']

    def __str__(self):
        return f"{self.roll_no} - {self.name}"


class Invigilator(models.Model):
    employee_id = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    department = models.ForeignKey(Department, on_delete=models.SET_NULL, null=True, blank=True, related_name='invigilators')

    class Meta:
        ordering = ['name', 'id']

    def __str__(self):
        return f"{self.employee_id} - {self.name}"


# --- 4. Exam, Subject and Mapping Models ---

class Exam(models.Model):
    exam_name = models.CharField(max_length=255)
    date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    departments = models.ManyToManyField(Department, blank=True, related_name='exams')
    rooms = models.ManyToManyField(Room, blank=True, related_name='exams')

    def __str__(self):
        return f"{self.exam_name} on {self.date}"


class Subject(models.Model):
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, null=True, blank=True, related_name='subjects')
    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)
    exam_date = models.DateField(null=True, blank=True)
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)

    class Meta:
        ordering = ['exam_date', 'start_time', 'code']

    def __str__(self):
        return f"{self.code} - {self.name}"


class DepartmentSubject(models.Model):
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='department_subjects')
    department = models.ForeignKey(Department, on_delete=models.CASCADE, related_name='subject_mappings')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, null=True, blank=True, related_name='department_mappings')

    class Meta:
        constraints = [
            UniqueConstraint(fields=['exam', 'department', 'subject'], name='unique_department_subject_per_exam'),
        ]

    def __str__(self):
        return f"{self.department} -> {self.subject} for {self.exam}"


# --- 5. Allocation Models ---

class AllocationRun(models.Model):
    """One row per scope; locked for the duration of an allocation run."""
    scope = models.CharField(max_length=64, unique=True)
    exam = models.ForeignKey(Exam, on_delete=models.SET_NULL, null=True, blank=True, related_name='allocation_runs')
    pattern = models.CharField(max_length=32, blank=True)
    grouping_key = models.CharField(max_length=32, blank=True)
    assigned_count = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.scope} ({self.pattern or 'no run yet'})"


class SeatAssignment(models.Model):
    scope = models.CharField(max_length=64, db_index=True)
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, null=True, blank=True, related_name='seat_assignments')
    subject = models.ForeignKey(Subject, on_delete=models.SET_NULL, null=True, blank=True, related_name='seat_assignments')
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='seat_assignments')
    room = models.ForeignKey(Room, on_delete=models.CASCADE, related_name='seat_assignments')
    seat_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    group_key = models.CharField(max_length=255, blank=True)
    pattern = models.CharField(max_length=32, blank=True)
    allotted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['scope', 'room__room_no', 'seat_number']
        constraints = [
            UniqueConstraint(fields=['scope', 'student'], name='unique_student_seat_per_scope'),
            UniqueConstraint(fields=['scope', 'room', 'seat_number'], name='unique_seat_in_room_per_scope'),
            # an exam is never seated twice, whatever scope key was used
            UniqueConstraint(
                fields=['exam', 'student'],
                condition=Q(exam__isnull=False),
                name='unique_student_seat_per_exam',
            ),
            UniqueConstraint(
                fields=['exam', 'room', 'seat_number'],
                condition=Q(exam__isnull=False),
                name='unique_seat_in_room_per_exam',
            ),
        ]

    def __str__(self):
        return f"{self.student} -> {self.room.room_no} (S{self.seat_number}) for {self.scope}"


class InvigilatorAssignment(models.Model):
    room = models.OneToOneField(Room, on_delete=models.CASCADE, related_name='invigilator_assignment')
    invigilator = models.OneToOneField(Invigilator, on_delete=models.CASCADE, related_name='assignment')
    assigned_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.invigilator} assigned to {self.room.room_no}"
